from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from ..config import CodeGuardSettings, get_settings
from ..logging import ScanLogger

ML_TIMEOUT_SECONDS = 5


@dataclass(frozen=True)
class MlSignal:
    probability: float
    model_version: str
    features_used: List[str] = field(default_factory=list)


def _parse_body(body: object) -> MlSignal:
    if not isinstance(body, dict):
        raise ValueError("classifier response is not an object")
    probability = float(body["probability"])
    if not 0.0 <= probability <= 1.0:
        raise ValueError(f"probability out of range: {probability}")
    features = body.get("features_used") or []
    return MlSignal(
        probability=probability,
        model_version=str(body.get("model_version") or "unknown"),
        features_used=[str(feature) for feature in features] if isinstance(features, list) else [],
    )


async def classify_with_ml(
    code: str,
    language: Optional[str],
    settings: Optional[CodeGuardSettings] = None,
    logger: Optional[ScanLogger] = None,
) -> Optional[MlSignal]:
    """
    Ask the external classifier for an AI-authorship probability.

    Best-effort: an unset URL, timeout, transport error, non-2xx status or a
    malformed body all yield ``None``.
    """
    settings = settings or get_settings()
    if not settings.ml_service_url:
        return None

    timeout = min(float(settings.ml_timeout_seconds), ML_TIMEOUT_SECONDS)
    endpoint = f"{settings.ml_service_url}/detect"

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(endpoint, json={"code": code, "language": language})

        if response.status_code < 200 or response.status_code >= 300:
            if logger:
                logger.warning("ML classifier returned error status", status=response.status_code)
            return None

        return _parse_body(response.json())
    except httpx.TimeoutException:
        if logger:
            logger.warning("ML classifier timeout", timeout_seconds=timeout)
    except httpx.HTTPError as exc:
        if logger:
            logger.warning("ML classifier unreachable", error=str(exc))
    except (ValueError, KeyError, TypeError) as exc:
        if logger:
            logger.warning("ML classifier response malformed", error=str(exc))
    return None
