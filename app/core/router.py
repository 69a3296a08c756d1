"""Router with automatic body parsing, upload ingestion and response handling."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any
from uuid import uuid4

import orjson
from asgi_correlation_id import correlation_id
from pydantic import BaseModel, ValidationError
from robyn import Request, Response, SubRouter, status_codes
from robyn.robyn import HttpMethod
from robyn.types import Body

from app.core.errors import error_response
from app.middlewares.upload import UploadIngestor, iter_chunks
from app.models.core import BodyType, FormFields
from app.models.uploads import UploadConfig, UploadedFile, UploadRequest

FILE_UPLOAD_ENDPOINTS: dict[str, UploadConfig] = {}

REQUEST_ID_HEADER = "x-request-id"

# Filled by the ingestor rather than by Robyn's injection.
UPLOAD_BODY_TYPES = frozenset({BodyType.FILE, BodyType.FORM, BodyType.PYDANTIC})


def parse_endpoint_signature(sig: inspect.Signature) -> dict[str, tuple[BodyType, type | None]]:
    """Classify handler parameters that need body, form or upload injection."""
    parsed: dict[str, tuple[BodyType, type | None]] = {}

    for name, param in sig.parameters.items():
        annotation = param.annotation

        if annotation is UploadedFile:
            parsed[name] = (BodyType.FILE, None)
            continue

        match annotation:
            case type() if issubclass(annotation, FormFields):
                parsed[name] = (BodyType.FORM, None)
            case type() if issubclass(annotation, BaseModel):
                parsed[name] = (BodyType.PYDANTIC, annotation)
            case type() if issubclass(annotation, Body):
                parsed[name] = (BodyType.JSONABLE, annotation)
            case type() if annotation is dict:
                parsed[name] = (BodyType.JSONABLE, None)
            case _ if name == "body":
                parsed[name] = (BodyType.JSONABLE, None)

    return parsed


def parse_request_body(
    body_config: dict[str, tuple[BodyType, type | None]],
    kwargs: dict[str, Any],
) -> Response | None:
    """Parse JSON/Pydantic body parameters."""
    for param_name, (body_type, model_cls) in body_config.items():
        if param_name not in kwargs:
            continue
        raw = kwargs[param_name]
        if not isinstance(raw, (str, bytes)):
            continue

        match body_type:
            case BodyType.PYDANTIC if model_cls:
                try:
                    kwargs[param_name] = model_cls.model_validate_json(raw)  # type: ignore[union-attr]
                except ValidationError as ex:
                    return Response(status_code=422, headers={}, description=ex.json())
            case BodyType.JSONABLE:
                try:
                    kwargs[param_name] = orjson.loads(raw)
                except orjson.JSONDecodeError as ex:
                    return Response(status_code=422, headers={}, description=str(ex))
    return None


def inject_upload(
    body_config: dict[str, tuple[BodyType, type | None]],
    upload: UploadRequest,
    kwargs: dict[str, Any],
) -> Response | None:
    """Hand the stored file, raw form fields and validated form models to the handler."""
    for param_name, (body_type, model_cls) in body_config.items():
        match body_type:
            case BodyType.FILE:
                kwargs[param_name] = upload.file
            case BodyType.FORM:
                kwargs[param_name] = FormFields(upload.form)
            case BodyType.PYDANTIC if model_cls:
                try:
                    kwargs[param_name] = model_cls.model_validate(upload.form)
                except ValidationError as ex:
                    return error_response(
                        "Missing required fields",
                        details=[".".join(map(str, err["loc"])) for err in ex.errors()],
                    )
    return None


def request_body_bytes(request: Request) -> bytes:
    """Robyn hands over the body as str when it decodes as UTF-8, bytes otherwise."""
    body = request.body
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body or b"")


def upload_request_from(request: Request, chunk_size: int) -> UploadRequest:
    return UploadRequest(
        headers=request.headers,
        stream=iter_chunks(request_body_bytes(request), chunk_size),
        path_params=dict(getattr(request, "path_params", None) or {}),
    )


def parse_response(result: Any) -> Response:
    """Convert handler result to Response."""
    match result:
        case Response():
            return result
        case BaseModel():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=result.model_dump_json(indent=4),
            )
        case dict():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=orjson.dumps(result).decode(),
            )
        case _:
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={},
                description=str(result),
            )


HTTP_METHODS = (
    HttpMethod.GET,
    HttpMethod.POST,
    HttpMethod.PUT,
    HttpMethod.DELETE,
    HttpMethod.PATCH,
)


def _create_method_wrapper(original_method: Callable, router_prefix: str = "") -> Callable:
    @wraps(original_method)
    def method_wrapper(*args, upload: UploadIngestor | None = None, **kwargs) -> Callable:
        endpoint = args[0] if args else kwargs.get("endpoint", "")
        decorator = original_method(*args, **kwargs)

        def handler_decorator(handler: Callable) -> Callable:
            sig = inspect.signature(handler)
            body_config = parse_endpoint_signature(sig)
            has_request_param = "request" in sig.parameters

            if upload is not None:
                full_path = f"{router_prefix}{endpoint}".replace("//", "/")
                FILE_UPLOAD_ENDPOINTS[full_path] = upload.config

            async def call_handler(request: Request, h_kwargs: dict[str, Any]) -> Response:
                # Pass request to handler only if it declared it
                if has_request_param:
                    h_kwargs["request"] = request
                return parse_response(await handler(**h_kwargs))

            @wraps(handler)
            async def wrapped_handler(request: Request, **h_kwargs):
                token = correlation_id.set(request.headers.get(REQUEST_ID_HEADER) or uuid4().hex)
                try:
                    if upload is None:
                        if error := parse_request_body(body_config, h_kwargs):
                            return error
                        return await call_handler(request, h_kwargs)

                    upload_request = upload_request_from(request, upload.config.chunk_size)

                    async def call_next() -> Response:
                        if error := inject_upload(body_config, upload_request, h_kwargs):
                            return error
                        return await call_handler(request, h_kwargs)

                    return await upload.handle_upload(upload_request, call_next)
                finally:
                    correlation_id.reset(token)

            # Build signature: always include request for Robyn injection
            new_params = [inspect.Parameter("request", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=Request)]
            for name, param in sig.parameters.items():
                if name == "request":
                    continue
                if name in body_config:
                    body_type, model_cls = body_config[name]
                    if upload is not None and body_type in UPLOAD_BODY_TYPES:
                        continue
                    if body_type is BodyType.PYDANTIC:
                        model_cls = type(model_cls.__name__, (model_cls, Body), {})  # type: ignore[union-attr]
                    new_params.append(param.replace(annotation=model_cls))
                else:
                    new_params.append(param)

            wrapped_handler.__signature__ = sig.replace(parameters=new_params)  # type: ignore[attr-defined]
            return decorator(wrapped_handler)

        return handler_decorator

    return method_wrapper


class Router(SubRouter):
    """SubRouter whose verbs accept `upload=UploadIngestor` and fill handler parameters automatically."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._prefix = kwargs.get("prefix", "")
        self._wrap_methods()

    def _wrap_methods(self) -> None:
        """Wrap HTTP methods with parsing logic."""
        for method in HTTP_METHODS:
            method_name = str(method).split(".")[-1].lower()
            if hasattr(self, method_name):
                original_method = getattr(self, method_name)
                wrapped_method = _create_method_wrapper(original_method, self._prefix)
                setattr(self, method_name, wrapped_method)
