"""Line-delimited JSON-RPC 2.0 server over stdin/stdout.

Each input line holds one request and produces exactly one response line.
Logging goes to stderr, so stdout carries nothing but responses.
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TextIO

from pydantic import BaseModel, ValidationError

from claude_provider.auth.exceptions import CredentialsError
from claude_provider.auth.oauth import ClaudeOAuthClient
from claude_provider.config.settings import Settings
from claude_provider.core.http_client import HTTPClientFactory
from claude_provider.core.logging import get_logger
from claude_provider.models import (
    get_plugin_info,
    list_models,
    parse_error,
    supports_model,
)
from claude_provider.services import hooks
from claude_provider.services.credentials import CredentialManager, CredentialStore

from .models import (
    APPLICATION_ERROR,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    CookieParams,
    CreateParams,
    ExchangeParams,
    JsonRpcRequest,
    JsonRpcResponse,
    ModelParams,
    OAuthParamsRequest,
    Params,
    ParseErrorParams,
    RefreshParams,
    ReleaseParams,
    RiskControlParams,
    TransformRequestParams,
    TransformResponseParams,
    ValidateParams,
)


logger = get_logger(__name__)

Handler = Callable[[Any], Awaitable[Any]]


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


class JsonRpcServer:
    """Dispatch JSON-RPC requests to the credential manager and OAuth client."""

    def __init__(self, manager: CredentialManager, oauth_client: ClaudeOAuthClient):
        self.manager = manager
        self.oauth_client = oauth_client
        self._methods: dict[str, tuple[type[Params], Handler]] = {
            "get_info": (Params, self._get_info),
            "list_models": (Params, self._list_models),
            "supports_model": (ModelParams, self._supports_model),
            "acquire_credential": (ModelParams, self._acquire_credential),
            "release_credential": (ReleaseParams, self._release_credential),
            "validate_credential": (ValidateParams, self._validate_credential),
            "refresh_token": (RefreshParams, self._refresh_token),
            "create_credential": (CreateParams, self._create_credential),
            "generate_oauth_params": (OAuthParamsRequest, self._generate_oauth_params),
            "exchange_authorization_code": (ExchangeParams, self._exchange_code),
            "oauth_with_cookie": (CookieParams, self._oauth_with_cookie),
            "transform_request": (TransformRequestParams, self._transform_request),
            "transform_response": (TransformResponseParams, self._transform_response),
            "apply_risk_control": (RiskControlParams, self._apply_risk_control),
            "parse_error": (ParseErrorParams, self._parse_error),
        }

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    async def handle_line(self, line: str) -> dict[str, Any]:
        """Decode one request line and return the response envelope."""
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("json_rpc_parse_error", error=str(e))
            return JsonRpcResponse.failure(
                None, PARSE_ERROR, f"Parse error: {e}"
            ).to_wire()

        try:
            request = JsonRpcRequest.model_validate(payload)
        except ValidationError as e:
            request_id = payload.get("id") if isinstance(payload, dict) else None
            return JsonRpcResponse.failure(
                request_id, INVALID_REQUEST, f"Invalid request: {e}"
            ).to_wire()

        response = await self.dispatch(request)
        return response.to_wire()

    async def dispatch(self, request: JsonRpcRequest) -> JsonRpcResponse:
        entry = self._methods.get(request.method)
        if entry is None:
            logger.warning("json_rpc_method_not_found", method=request.method)
            return JsonRpcResponse.failure(
                request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}"
            )

        params_model, handler = entry
        try:
            params = params_model.model_validate(request.params)
        except ValidationError as e:
            return JsonRpcResponse.failure(
                request.id, INVALID_PARAMS, f"Invalid params: {e}"
            )

        logger.debug("json_rpc_request", method=request.method, id=request.id)
        try:
            result = await handler(params)
        except CredentialsError as e:
            logger.warning(
                "json_rpc_application_error",
                method=request.method,
                error=str(e),
                error_type=type(e).__name__,
            )
            return JsonRpcResponse.failure(
                request.id, APPLICATION_ERROR, str(e), {"type": type(e).__name__}
            )
        except Exception as e:
            logger.exception("json_rpc_internal_error", method=request.method)
            return JsonRpcResponse.failure(
                request.id, INTERNAL_ERROR, f"Internal error: {e}"
            )

        return JsonRpcResponse.success(request.id, _dump(result))

    async def serve(
        self, reader: TextIO | None = None, writer: TextIO | None = None
    ) -> None:
        """Answer requests until the input stream closes."""
        reader = reader or sys.stdin
        writer = writer or sys.stdout
        logger.info("json_rpc_server_started", methods=len(self._methods))

        while True:
            line = await asyncio.to_thread(reader.readline)
            if not line:
                break
            if not line.strip():
                continue
            response = await self.handle_line(line)
            writer.write(json.dumps(response) + "\n")
            writer.flush()

        logger.info("json_rpc_server_stopped")

    async def _get_info(self, params: Params) -> dict[str, Any]:
        return get_plugin_info()

    async def _list_models(self, params: Params) -> Any:
        return list_models()

    async def _supports_model(self, params: ModelParams) -> dict[str, bool]:
        return {"supports": supports_model(params.model)}

    async def _acquire_credential(self, params: ModelParams) -> Any:
        return await self.manager.acquire(params.model)

    async def _release_credential(self, params: ReleaseParams) -> dict[str, Any]:
        await self.manager.release(params.credential_id, params.result)
        return {}

    async def _validate_credential(self, params: ValidateParams) -> Any:
        return await self.manager.validate(params.credential_id, remote=params.remote)

    async def _refresh_token(self, params: RefreshParams) -> Any:
        if params.max_attempts is None:
            return await self.manager.refresh(params.credential_id)
        return await self.manager.refresh_with_retry(
            params.credential_id, params.max_attempts
        )

    async def _create_credential(self, params: CreateParams) -> dict[str, str]:
        credential_id = await self.manager.create(params.auth_type, params.config)
        return {"credential_id": credential_id}

    async def _generate_oauth_params(self, params: OAuthParamsRequest) -> Any:
        return self.oauth_client.generate_pkce_params(params.is_setup_token)

    async def _exchange_code(self, params: ExchangeParams) -> Any:
        return await self.oauth_client.exchange_code(
            params.code, params.code_verifier, params.state
        )

    async def _oauth_with_cookie(self, params: CookieParams) -> Any:
        return await self.oauth_client.cookie_derived_flow(
            params.session_key, params.is_setup_token
        )

    async def _transform_request(self, params: TransformRequestParams) -> Any:
        return {"request": await hooks.transform_request(params.request)}

    async def _transform_response(self, params: TransformResponseParams) -> Any:
        return {"response": await hooks.transform_response(params.response)}

    async def _apply_risk_control(self, params: RiskControlParams) -> Any:
        request = await hooks.apply_risk_control(params.request, params.credential_id)
        return {"request": request}

    async def _parse_error(self, params: ParseErrorParams) -> Any:
        return parse_error(params.status, params.body)


async def run_server(
    settings: Settings,
    reader: TextIO | None = None,
    writer: TextIO | None = None,
) -> None:
    """Build the provider from settings and serve JSON-RPC until EOF."""
    async with HTTPClientFactory.managed_client(settings=settings.http) as http_client:
        oauth_client = ClaudeOAuthClient(
            settings=settings.oauth,
            http_client=http_client,
            http_settings=settings.http,
        )
        manager = CredentialManager(
            CredentialStore(),
            oauth_client,
            settings=settings,
            http_client=http_client,
        )
        server = JsonRpcServer(manager, oauth_client)
        await server.serve(reader, writer)
