"""Patches the OpenAPI document so upload routes advertise multipart/form-data."""

import orjson
from robyn import Response

from app.core.logger import LogIcon, logger
from app.core.router import FILE_UPLOAD_ENDPOINTS
from app.middlewares.base import BaseMiddleware
from app.models.uploads import UploadConfig


def openapi_path(endpoint: str) -> str:
    """Robyn's `/items/:id` route syntax as OpenAPI's `/items/{id}`."""
    return "/".join(f"{{{part[1:]}}}" if part.startswith(":") else part for part in endpoint.split("/"))


def describe_allowed_types(config: UploadConfig) -> str:
    rules = []
    if config.allowed_types:
        rules.append(", ".join(sorted(config.allowed_types)))
    elif config.allowed_type_prefix:
        rules.append(f"{config.allowed_type_prefix}*")
    if config.allowed_extensions:
        rules.append(" ".join(sorted(config.allowed_extensions)))
    limit = f"max {config.max_bytes} bytes"
    return "; ".join([*rules, limit])


def multipart_request_body(config: UploadConfig) -> dict:
    return {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        config.field_name: {
                            "type": "string",
                            "format": "binary",
                            "description": describe_allowed_types(config),
                        }
                    },
                    "required": [config.field_name],
                    "additionalProperties": {"type": "string"},
                }
            }
        },
        "required": True,
    }


class FileUploadOpenAPIMiddleware(BaseMiddleware):
    """Rewrites the request body of every registered upload endpoint in /openapi.json."""

    endpoints = frozenset(["/openapi.json"])

    def __init__(self, uploads: dict[str, UploadConfig] | None = None) -> None:
        super().__init__()
        self._uploads = FILE_UPLOAD_ENDPOINTS if uploads is None else uploads

    def after(self, response: Response) -> Response:
        if not self._uploads:
            return response

        try:
            spec = orjson.loads(response.description)
        except orjson.JSONDecodeError:
            logger.warning("OpenAPI document is not JSON, leaving it untouched", icon=LogIcon.WARNING)
            return response

        paths = spec.get("paths", {})
        for endpoint, config in self._uploads.items():
            for candidate in (endpoint, openapi_path(endpoint)):
                for operation in paths.get(candidate, {}).values():
                    if isinstance(operation, dict):
                        operation["requestBody"] = multipart_request_body(config)

        response.description = orjson.dumps(spec).decode()
        return response
