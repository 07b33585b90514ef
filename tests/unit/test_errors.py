"""Tests for error normalization."""

from __future__ import annotations

from graphql import GraphQLError

from gqlproxy.graphql.adapters import (
    ConfigurationError,
    ErrorKind,
    MalformedResponseError,
    NormalizedError,
    UpstreamHttpError,
    UpstreamTransportError,
    normalize_error,
)

from ..fakes import TEST_API_KEY


class TestNormalizedError:
    def test_to_graphql_extensions(self) -> None:
        error = NormalizedError(
            code="DEEPSEEK_UPSTREAM_HTTP_ERROR",
            kind=ErrorKind.UPSTREAM_HTTP,
            message="DeepSeek API request failed: 401 - nope",
            service_name="deepseek",
            status_code=401,
            request_id="req-1",
        )
        assert error.to_graphql_extensions() == {
            "code": "DEEPSEEK_UPSTREAM_HTTP_ERROR",
            "kind": "upstream_http",
            "service": "deepseek",
            "statusCode": 401,
            "requestId": "req-1",
        }

    def test_extensions_omit_missing_status(self) -> None:
        error = NormalizedError(
            code="POKEAPI_UPSTREAM_TRANSPORT_ERROR",
            kind=ErrorKind.UPSTREAM_TRANSPORT,
            message="PokeAPI request failed: timed out",
            service_name="pokeapi",
        )
        extensions = error.to_graphql_extensions()
        assert "statusCode" not in extensions
        assert "requestId" not in extensions

    def test_to_graphql_error(self) -> None:
        error = NormalizedError(
            code="X_INTERNAL_ERROR",
            kind=ErrorKind.INTERNAL,
            message="boom",
            service_name="x",
        )
        gql_error = error.to_graphql_error()
        assert isinstance(gql_error, GraphQLError)
        assert gql_error.message == "boom"
        assert gql_error.extensions == error.to_graphql_extensions()

    def test_to_log_dict(self) -> None:
        error = NormalizedError(
            code="DEEPSEEK_CONFIGURATION_ERROR",
            kind=ErrorKind.CONFIGURATION,
            message="DEEPSEEK_API_KEY environment variable is not set",
            service_name="deepseek",
        )
        log_dict = error.to_log_dict()
        assert log_dict["error_code"] == "DEEPSEEK_CONFIGURATION_ERROR"
        assert log_dict["kind"] == "configuration"
        assert log_dict["status_code"] is None
        assert "timestamp" in log_dict


class TestNormalizeError:
    def test_configuration_error_names_setting(self) -> None:
        error = ConfigurationError("DEEPSEEK_API_KEY", service_name="deepseek")

        normalized = normalize_error(error, operation="DeepSeek API request")

        assert normalized.kind is ErrorKind.CONFIGURATION
        assert normalized.code == "DEEPSEEK_CONFIGURATION_ERROR"
        assert normalized.message == "DEEPSEEK_API_KEY environment variable is not set"
        assert normalized.status_code is None

    def test_http_error_includes_status_and_body(self) -> None:
        error = UpstreamHttpError(
            "API error: 401",
            service_name="deepseek",
            status_code=401,
            body='{"error":{"message":"Authentication Fails"}}',
        )

        normalized = normalize_error(error, operation="DeepSeek API request")

        assert normalized.kind is ErrorKind.UPSTREAM_HTTP
        assert normalized.status_code == 401
        assert normalized.message == (
            'DeepSeek API request failed: 401 - {"error":{"message":"Authentication Fails"}}'
        )

    def test_http_error_with_empty_body(self) -> None:
        error = UpstreamHttpError("API error: 502", service_name="pokeapi", status_code=502, body="")

        normalized = normalize_error(error, operation="PokeAPI request")

        assert normalized.message == "PokeAPI request failed: 502 - "

    def test_transport_error_uses_reason(self) -> None:
        error = UpstreamTransportError(
            "Request timed out", service_name="pokeapi", reason="timed out after 60.0s"
        )

        normalized = normalize_error(error, operation="PokeAPI request")

        assert normalized.kind is ErrorKind.UPSTREAM_TRANSPORT
        assert normalized.code == "POKEAPI_UPSTREAM_TRANSPORT_ERROR"
        assert normalized.message == "PokeAPI request failed: timed out after 60.0s"

    def test_malformed_response_is_its_own_kind(self) -> None:
        error = MalformedResponseError(
            "Malformed upstream response", service_name="pokeapi", reason="invalid JSON"
        )

        normalized = normalize_error(error, operation="PokeAPI request")

        assert normalized.kind is ErrorKind.MALFORMED_RESPONSE
        assert normalized.code == "POKEAPI_MALFORMED_RESPONSE_ERROR"
        assert normalized.message == "PokeAPI request failed: invalid JSON"

    def test_transport_error_falls_back_to_message(self) -> None:
        error = UpstreamTransportError("Request failed", service_name="pokeapi")

        normalized = normalize_error(error, operation="PokeAPI request")

        assert normalized.message == "PokeAPI request failed: Request failed"

    def test_unknown_error_hides_details(self) -> None:
        normalized = normalize_error(
            KeyError("internal detail"), operation="Debug query", service_name="deepseek"
        )

        assert normalized.kind is ErrorKind.INTERNAL
        assert normalized.code == "DEEPSEEK_INTERNAL_ERROR"
        assert normalized.message == "Debug query failed: an unexpected error occurred"
        assert "internal detail" not in normalized.message

    def test_service_name_override(self) -> None:
        error = UpstreamTransportError("Request failed", reason="refused")

        normalized = normalize_error(error, operation="PokeAPI request", service_name="pokeapi")

        assert normalized.service_name == "pokeapi"
        assert normalized.code.startswith("POKEAPI_")

    def test_request_id_attached(self) -> None:
        normalized = normalize_error(
            UpstreamTransportError("Request failed"), operation="op", request_id="req-42"
        )
        assert normalized.request_id == "req-42"
        assert normalized.to_graphql_extensions()["requestId"] == "req-42"

    def test_secrets_are_redacted_from_message(self) -> None:
        error = UpstreamHttpError(
            "API error: 401",
            service_name="deepseek",
            status_code=401,
            body=f"Invalid API key: {TEST_API_KEY}",
        )

        normalized = normalize_error(error, operation="DeepSeek API request", secrets=[TEST_API_KEY])

        assert TEST_API_KEY not in normalized.message
        assert normalized.message == "DeepSeek API request failed: 401 - Invalid API key: ***"
