"""
HTTP routes.

- GET /{application}/{profile}.yml        merged configuration of one profile file
  (also .yaml; optional ?label=)
- GET /{service}/{env}[?label=]           merged configuration as application.yaml
- GET /{application}/{profile}/{label}    raw environment (property sources) as JSON
- GET /actuator/health                    liveness

Handlers are plain functions, so FastAPI runs them in its thread pool and
blocking repository reads (git subprocesses) do not stall the event loop.
Every request builds its own tree.
"""

import logging as _logging
import typing as _typing

import fastapi as _fastapi

import propserver.config as config
import propserver.render as render
import propserver.resolver as resolver

_logger = _logging.getLogger(__name__)


def get_resolver(request: _fastapi.Request) -> resolver.ConfigResolver:
    return request.app.state.resolver


def get_settings(request: _fastapi.Request) -> config.Settings:
    return request.app.state.settings


ResolverDep = _typing.Annotated[resolver.ConfigResolver, _fastapi.Depends(get_resolver)]
SettingsDep = _typing.Annotated[config.Settings, _fastapi.Depends(get_settings)]


def create_router(context_path: str = "") -> _fastapi.APIRouter:
    """
    Create the API router.

    Args:
        context_path: Prefix for every route ("" or "/something").
    """
    router = _fastapi.APIRouter(prefix=context_path)

    # Registered first: "/actuator/health" would otherwise match "/{service}/{env}"
    @router.get("/actuator/health")
    def health() -> dict[str, str]:
        return {"status": "UP"}

    # Document routes must precede "/{service}/{env}", which would also match them
    @router.get("/{application}/{profile}.yml")
    @router.get("/{application}/{profile}.yaml")
    def profile_document(
        application: str,
        profile: str,
        resolve: ResolverDep,
        settings: SettingsDep,
        label: str | None = None,
    ) -> _fastapi.Response:
        """Merged configuration for {application}/{profile}.yaml as a YAML document."""
        _logger.info(
            "Fetching document for application=%s, profile=%s, label=%s",
            application,
            profile,
            label or settings.repository.default_label,
        )
        node = resolve.resolve_profile(application, profile, label)
        return _fastapi.Response(
            content=render.to_yaml(node, indent=settings.output.indent),
            media_type=render.YAML_MEDIA_TYPE,
        )

    @router.get("/{service}/{env}")
    def config_as_yaml(
        service: str,
        env: str,
        resolve: ResolverDep,
        settings: SettingsDep,
        label: str | None = None,
    ) -> _fastapi.Response:
        """Merged configuration for {service}/application-{env}.yaml as a YAML file."""
        label = label or settings.repository.default_label
        _logger.info("Fetching config for service=%s, env=%s, label=%s", service, env, label)

        node = resolve.resolve(service, env, label)
        body = render.to_yaml(node, indent=settings.output.indent)

        _logger.info(
            "Generated YAML configuration (%d bytes) for %s/%s",
            len(body),
            service,
            resolver.profile_for(env),
        )
        return _fastapi.Response(
            content=body,
            media_type=render.YAML_MEDIA_TYPE,
            headers={
                "Content-Disposition": f'attachment; filename="{settings.output.filename}"'
            },
        )

    @router.get("/{application}/{profile}/{label}")
    def environment(
        application: str,
        profile: str,
        label: str,
        resolve: ResolverDep,
    ) -> dict[str, _typing.Any]:
        """Property sources for an application profile, highest priority first."""
        found = resolve.repository.find_one(application, profile, label)
        return found.model_dump(mode="json", by_alias=True)

    return router
