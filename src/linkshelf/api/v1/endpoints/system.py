"""System and deployment metadata endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Request

from linkshelf.api.v1.dependencies import SettingsDep
from linkshelf.db.time import utcnow

router = APIRouter(tags=["system"])

Source = Literal["env", "header", "runtime"]


def _pick(configured: str | None, request: Request, header: str) -> tuple[str, Source]:
    """Resolve one build attribute: configuration, then deploy-time header."""
    value = (configured or "").strip()
    if value:
        return value, "env"
    value = request.headers.get(header, "").strip()
    if value:
        return value, "header"
    return "", "runtime"


@router.get("/version", summary="Report the deployed build")
async def get_version(request: Request, settings: SettingsDep) -> dict[str, object]:
    """Return version, commit and build time with where each value came from.

    Values set in the environment win over the ``X-App-*`` headers a
    deployment proxy may inject. A missing build time is reported as the
    current time.
    """
    version, version_source = _pick(settings.app_version, request, "x-app-version")
    commit, commit_source = _pick(settings.app_commit, request, "x-app-commit")
    build_time, build_time_source = _pick(settings.build_time, request, "x-build-time")
    if not build_time:
        build_time = utcnow().isoformat().replace("+00:00", "Z")

    return {
        "ok": True,
        "version": version,
        "commit": commit,
        "buildTime": build_time,
        "sources": {
            "version": version_source,
            "commit": commit_source,
            "buildTime": build_time_source,
        },
    }
