"""Backend configuration resolution.

One base BackendConfig serves the whole application. A call may name one of
its alternates ("altconfigs") to swap in a different model, endpoint or
credential for that call only:

  resolve(base)               → base chat fields
  resolve(base, "fast-model") → alternate's non-empty fields, base for the rest

Pure data transformation, no I/O.
"""

from typing import Optional

from llmgen.llm.errors import ConfigError
from llmgen.schemas.config import AlternateConfig, BackendConfig, BackendKind, EffectiveConfig
from llmgen.utils.logging import log, get_logger

MODULE = "resolver"
logger = get_logger()


def _find_alternate(base: BackendConfig, name: str) -> AlternateConfig:
    for alt in base.altconfigs:
        if alt.name == name:
            return alt
    raise ConfigError(
        "unknown override",
        detail={"override": name, "available": [a.name for a in base.altconfigs if a.name]},
    )


def resolve(base: BackendConfig, override_name: Optional[str] = None) -> EffectiveConfig:
    """Produce the effective configuration for one call.

    Args:
        base: The application's backend configuration.
        override_name: Name of an entry in base.altconfigs, or None/"" for
            the base configuration.

    Raises:
        ConfigError: override_name does not match any alternate exactly.
    """
    effective = dict(
        backend=base.backend,
        model=base.model,
        endpoint=base.endpoint,
        api_key=base.api_key,
        bearer=base.bearer_auth,
        llama_dir=base.llama_dir,
        model_path=base.model_path,
    )

    if override_name:
        alt = _find_alternate(base, override_name)
        # Alternate wins field-by-field; unset alternate fields keep the base
        for target, value in (
            ("model", alt.model),
            ("endpoint", alt.endpoint),
            ("api_key", alt.api_key),
            ("bearer", alt.bearer_auth),
        ):
            if value:
                effective[target] = value
        effective["override_name"] = alt.name
        log.debug(logger, MODULE, "override_applied", "Alternate configuration applied",
                  override=alt.name, model=effective["model"])

    return EffectiveConfig(**effective)


def override_options(base: BackendConfig) -> list[str]:
    """Alternate names a caller may pick as an override.

    Alternates are only offered for the OpenAI-compatible backend, and only
    the ones that have a name.
    """
    if base.backend != BackendKind.OPENAI_COMPATIBLE:
        return []
    return [alt.name for alt in base.altconfigs if alt.name]
