"""
FastAPI application factory.

Errors raised by the resolver and repositories are mapped to JSON bodies of
the form {"error": "..."}:

- ConfigNotFoundError  -> 404
- InvalidRequestError  -> 400
- KeyCollisionError    -> 409 (strict output mode only)
- RepositoryError      -> 500
"""

import contextlib as _contextlib
import logging as _logging
import typing as _typing

import fastapi as _fastapi
import fastapi.responses as _responses

import propserver
import propserver.config as config
import propserver.repository as repository
import propserver.resolver as resolver
import propserver.server.routes as routes
import propserver.tree as tree

_logger = _logging.getLogger(__name__)


def _error(status_code: int, message: str) -> _responses.JSONResponse:
    return _responses.JSONResponse(status_code=status_code, content={"error": message})


async def _not_found(request: _fastapi.Request, exc: Exception) -> _responses.JSONResponse:  # noqa: ARG001
    return _error(404, str(exc))


async def _bad_request(request: _fastapi.Request, exc: Exception) -> _responses.JSONResponse:  # noqa: ARG001
    return _error(400, str(exc))


async def _conflict(request: _fastapi.Request, exc: Exception) -> _responses.JSONResponse:  # noqa: ARG001
    return _error(409, f"Conflicting configuration keys: {exc}")


async def _repository_failure(
    request: _fastapi.Request,
    exc: Exception,
) -> _responses.JSONResponse:
    _logger.error("Error fetching configuration for %s: %s", request.url.path, exc)
    return _error(500, f"Failed to fetch configuration: {exc}")


def create_app(
    settings: config.Settings | None = None,
    repo: repository.EnvironmentRepository | None = None,
) -> _fastapi.FastAPI:
    """
    Create the HTTP application.

    Args:
        settings: Settings to use. Loaded from the environment if None.
        repo: Repository to serve from. Created from settings if None.
    """
    settings = settings or config.Settings()
    repo = repo or repository.create_repository(settings)
    builder = tree.HierarchyBuilder(strict=settings.output.strict)

    @_contextlib.asynccontextmanager
    async def lifespan(app: _fastapi.FastAPI) -> _typing.AsyncIterator[None]:  # noqa: ARG001
        if settings.repository.clone_on_start and isinstance(
            repo, repository.GitEnvironmentRepository
        ):
            repo.ensure_clone()
        yield

    app = _fastapi.FastAPI(
        title="propserver",
        version=propserver.__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.resolver = resolver.ConfigResolver(repo, builder)

    app.add_exception_handler(resolver.ConfigNotFoundError, _not_found)
    app.add_exception_handler(repository.InvalidRequestError, _bad_request)
    app.add_exception_handler(tree.KeyCollisionError, _conflict)
    app.add_exception_handler(repository.RepositoryError, _repository_failure)

    app.include_router(routes.create_router(settings.server.context_path))
    return app
