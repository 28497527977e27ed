"""Tests for AWS SigV4 signing and Bedrock helpers."""

import hashlib
import hmac
from datetime import UTC, datetime

import httpx
import pytest
from pydantic import SecretStr
from pytest_httpx import HTTPXMock

from claude_provider.auth.bedrock import (
    build_bedrock_url,
    build_canonical_request,
    get_signature_key,
    map_to_bedrock_model,
    sign_aws_request,
    validate_bedrock_credentials,
)
from claude_provider.auth.exceptions import (
    IncompleteCredentialError,
    InvalidUrlError,
    NetworkError,
)
from claude_provider.auth.models import BedrockCredential


SIGNING_INSTANT = datetime(2024, 1, 15, 10, 30, 45, tzinfo=UTC)
EXAMPLE_SECRET = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"


@pytest.fixture
def bedrock_credential() -> BedrockCredential:
    return BedrockCredential(
        access_key_id="AKIDEXAMPLE",
        secret_access_key=SecretStr(EXAMPLE_SECRET),
        region="us-west-2",
    )


@pytest.mark.unit
class TestSigningPrimitives:
    """Key derivation and canonical request checked against AWS examples."""

    def test_signing_key_matches_aws_example(self) -> None:
        key = get_signature_key(EXAMPLE_SECRET, "20120215", "us-east-1", "iam")
        assert (
            key.hex()
            == "f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d"
        )

    def test_get_vanilla_signature(self) -> None:
        canonical = build_canonical_request(
            "GET",
            "/",
            "",
            "example.amazonaws.com",
            "20150830T123600Z",
            hashlib.sha256(b"").hexdigest(),
        )
        canonical_hash = hashlib.sha256(canonical.encode()).hexdigest()
        assert (
            canonical_hash
            == "bb579772317eb040ac9ed261061d46c1f17a8133879d6129b6e1c25292927e63"
        )

        string_to_sign = (
            "AWS4-HMAC-SHA256\n20150830T123600Z\n"
            f"20150830/us-east-1/service/aws4_request\n{canonical_hash}"
        )
        key = get_signature_key(EXAMPLE_SECRET, "20150830", "us-east-1", "service")
        signature = hmac.new(key, string_to_sign.encode(), hashlib.sha256).hexdigest()
        assert (
            signature
            == "5fa00fa31553b73ebf1942676e86291e8372ff2a2260956d9b8aae1d763fbf31"
        )


@pytest.mark.unit
class TestSignAwsRequest:
    """Test full request signing."""

    def test_deterministic_for_fixed_instant(
        self, bedrock_credential: BedrockCredential
    ) -> None:
        url = "https://bedrock-runtime.us-west-2.amazonaws.com/model/m/invoke"
        first = sign_aws_request(
            "POST", url, bedrock_credential, b'{"a":1}', now=SIGNING_INSTANT
        )
        second = sign_aws_request(
            "POST", url, bedrock_credential, b'{"a":1}', now=SIGNING_INSTANT
        )
        assert first == second
        assert first.x_amz_date == "20240115T103045Z"

    def test_authorization_header_layout(
        self, bedrock_credential: BedrockCredential
    ) -> None:
        signature = sign_aws_request(
            "GET",
            "https://bedrock.us-west-2.amazonaws.com/foundation-models",
            bedrock_credential,
            now=SIGNING_INSTANT,
        )
        prefix = (
            "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20240115/us-west-2/bedrock/"
            "aws4_request, SignedHeaders=host;x-amz-date, Signature="
        )
        assert signature.authorization.startswith(prefix)
        hex_signature = signature.authorization[len(prefix) :]
        assert len(hex_signature) == 64
        int(hex_signature, 16)

    def test_signature_recomputed_independently(
        self, bedrock_credential: BedrockCredential
    ) -> None:
        """Port is dropped from host; empty path becomes '/'; query kept raw."""
        body = b'{"prompt":"hi"}'
        signature = sign_aws_request(
            "POST",
            "https://bedrock-runtime.us-west-2.amazonaws.com:443?b=2&a=1",
            bedrock_credential,
            body,
            now=SIGNING_INSTANT,
        )

        canonical = (
            "POST\n/\nb=2&a=1\n"
            "host:bedrock-runtime.us-west-2.amazonaws.com\n"
            "x-amz-date:20240115T103045Z\n\n"
            "host;x-amz-date\n" + hashlib.sha256(body).hexdigest()
        )
        string_to_sign = (
            "AWS4-HMAC-SHA256\n20240115T103045Z\n"
            "20240115/us-west-2/bedrock/aws4_request\n"
            + hashlib.sha256(canonical.encode()).hexdigest()
        )

        def _hmac(key: bytes, msg: str) -> bytes:
            return hmac.new(key, msg.encode(), hashlib.sha256).digest()

        key = _hmac(f"AWS4{EXAMPLE_SECRET}".encode(), "20240115")
        for part in ("us-west-2", "bedrock", "aws4_request"):
            key = _hmac(key, part)
        expected = hmac.new(key, string_to_sign.encode(), hashlib.sha256).hexdigest()

        assert signature.authorization.endswith(f"Signature={expected}")

    def test_body_changes_signature(
        self, bedrock_credential: BedrockCredential
    ) -> None:
        url = "https://bedrock-runtime.us-west-2.amazonaws.com/model/m/invoke"
        kwargs = {"now": SIGNING_INSTANT}
        one = sign_aws_request("POST", url, bedrock_credential, b"a", **kwargs)
        two = sign_aws_request("POST", url, bedrock_credential, b"b", **kwargs)
        assert one.authorization != two.authorization

    def test_session_token_is_surfaced_not_signed(
        self, bedrock_credential: BedrockCredential
    ) -> None:
        url = "https://bedrock-runtime.us-west-2.amazonaws.com/model/m/invoke"
        unsigned = sign_aws_request(
            "POST", url, bedrock_credential, now=SIGNING_INSTANT
        )

        bedrock_credential.session_token = SecretStr("session-123")
        with_token = sign_aws_request(
            "POST", url, bedrock_credential, now=SIGNING_INSTANT
        )

        assert with_token.x_amz_security_token == "session-123"
        assert with_token.authorization == unsigned.authorization
        assert with_token.as_headers()["x-amz-security-token"] == "session-123"
        assert "x-amz-security-token" not in unsigned.as_headers()

    @pytest.mark.parametrize("url", ["not a url", "/relative/path", "https://"])
    def test_malformed_url(
        self, bedrock_credential: BedrockCredential, url: str
    ) -> None:
        with pytest.raises(InvalidUrlError):
            sign_aws_request("GET", url, bedrock_credential, now=SIGNING_INSTANT)

    def test_missing_keys(self) -> None:
        credential = BedrockCredential(access_key_id="AKID")
        with pytest.raises(IncompleteCredentialError) as exc_info:
            sign_aws_request("GET", "https://example.com/", credential)
        assert exc_info.value.missing_fields == ["secret_access_key"]


@pytest.mark.unit
class TestBedrockHelpers:
    def test_known_model_mapping(self) -> None:
        assert (
            map_to_bedrock_model("claude-3-5-sonnet-20241022")
            == "us.anthropic.claude-3-5-sonnet-20241022-v2:0"
        )

    def test_unknown_model_mapping(self) -> None:
        assert map_to_bedrock_model("claude-next") == "us.anthropic.claude-next-v1:0"

    def test_build_url(self) -> None:
        assert build_bedrock_url("eu-west-1", "m-1") == (
            "https://bedrock-runtime.eu-west-1.amazonaws.com/model/m-1/"
            "invoke-with-response-stream"
        )
        assert build_bedrock_url("eu-west-1", "m-1", stream=False).endswith(
            "/model/m-1/invoke"
        )


@pytest.mark.auth
class TestValidateBedrockCredentials:
    """Remote check against the Bedrock control plane."""

    async def test_success(
        self,
        httpx_mock: HTTPXMock,
        http_client: httpx.AsyncClient,
        bedrock_credential: BedrockCredential,
    ) -> None:
        httpx_mock.add_response(
            url="https://bedrock.us-west-2.amazonaws.com/foundation-models",
            json={"modelSummaries": []},
        )

        assert await validate_bedrock_credentials(bedrock_credential, http_client)

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Authorization"].startswith("AWS4-HMAC-SHA256 ")
        assert "x-amz-date" in request.headers

    async def test_rejected(
        self,
        httpx_mock: HTTPXMock,
        http_client: httpx.AsyncClient,
        bedrock_credential: BedrockCredential,
    ) -> None:
        httpx_mock.add_response(status_code=403)
        assert not await validate_bedrock_credentials(bedrock_credential, http_client)

    async def test_transport_error(
        self,
        httpx_mock: HTTPXMock,
        http_client: httpx.AsyncClient,
        bedrock_credential: BedrockCredential,
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("boom"))
        with pytest.raises(NetworkError):
            await validate_bedrock_credentials(bedrock_credential, http_client)
