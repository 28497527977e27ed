"""JSON-RPC envelope and parameter models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from claude_provider.auth.models import ReleaseResult


PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
APPLICATION_ERROR = -32000


class JsonRpcRequest(BaseModel):
    jsonrpc: str = "2.0"
    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    id: Any = None


class JsonRpcError(BaseModel):
    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """Response envelope; exactly one of ``result`` and ``error`` is sent."""

    jsonrpc: str = "2.0"
    result: Any = None
    error: JsonRpcError | None = None
    id: Any = None

    @classmethod
    def success(cls, id: Any, result: Any) -> "JsonRpcResponse":
        return cls(result=result, id=id)

    @classmethod
    def failure(
        cls, id: Any, code: int, message: str, data: Any = None
    ) -> "JsonRpcResponse":
        return cls(error=JsonRpcError(code=code, message=message, data=data), id=id)

    def to_wire(self) -> dict[str, Any]:
        if self.error is not None:
            return {
                "jsonrpc": self.jsonrpc,
                "error": self.error.model_dump(mode="json", exclude_none=True),
                "id": self.id,
            }
        return {"jsonrpc": self.jsonrpc, "result": self.result, "id": self.id}


class Params(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ModelParams(Params):
    model: str


class ReleaseParams(Params):
    credential_id: str
    result: ReleaseResult = Field(default_factory=ReleaseResult)


class ValidateParams(Params):
    credential_id: str
    remote: bool = False


class RefreshParams(Params):
    credential_id: str
    max_attempts: int | None = Field(default=None, ge=1)


class CreateParams(Params):
    auth_type: str = "oauth"
    config: dict[str, Any] = Field(default_factory=dict)


class OAuthParamsRequest(Params):
    is_setup_token: bool = False


class ExchangeParams(Params):
    code: str
    code_verifier: str
    state: str


class CookieParams(Params):
    session_key: str
    is_setup_token: bool = False


class TransformRequestParams(Params):
    request: Any = None


class TransformResponseParams(Params):
    response: Any = None


class RiskControlParams(Params):
    request: Any = None
    credential_id: str | None = None


class ParseErrorParams(Params):
    status: int
    body: str = ""
