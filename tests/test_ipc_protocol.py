"""Tests for cmdpal.ipc.protocol and cmdpal.ipc.errors.

The exception mapping is tested here since it builds protocol models.
"""

import pytest
from pydantic import ValidationError

from cmdpal.core.errors import (
    HistoryStoreError,
    StoreQueryError,
    StoreUnavailableError,
)
from cmdpal.ipc.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    STORE_QUERY_FAILED,
    STORE_UNAVAILABLE,
    describe_validation_error,
    error_from_exception,
    error_response,
)
from cmdpal.ipc.protocol import (
    DetectPatternsParams,
    GetPatternsParams,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    LimitParams,
    PatternSuggestionParams,
    RecordInvocationParams,
    RecordQueryParams,
    RecordResourceParams,
    ResourceListParams,
)


class TestJsonRpcEnvelope:
    def test_minimal_request(self):
        req = JsonRpcRequest(method="palette.top_commands")
        assert req.jsonrpc == "2.0"
        assert req.params is None
        assert req.id is None

    def test_request_with_params_and_id(self):
        req = JsonRpcRequest.model_validate({
            "jsonrpc": "2.0",
            "method": "palette.top_commands",
            "params": {"limit": 3},
            "id": "abc",
        })
        assert req.params == {"limit": 3}
        assert req.id == "abc"

    def test_wrong_version_rejected(self):
        with pytest.raises(ValidationError):
            JsonRpcRequest.model_validate({"jsonrpc": "1.0", "method": "x"})

    def test_response_serializes(self):
        resp = JsonRpcResponse(result=[{"command_id": "a"}], id=7)
        data = resp.model_dump()
        assert data == {"jsonrpc": "2.0", "result": [{"command_id": "a"}], "id": 7}

    def test_null_result_serializes(self):
        assert JsonRpcResponse(result=None, id=1).model_dump()["result"] is None


class TestParamModels:
    def test_record_invocation_defaults(self):
        p = RecordInvocationParams.model_validate({"command_id": "git.push"})
        assert p.success is True
        assert p.execution_time_ms is None

    def test_record_invocation_alias(self):
        p = RecordInvocationParams.model_validate({"command_id": "a", "exec_time_ms": 12})
        assert p.execution_time_ms == 12

    def test_record_invocation_negative_time(self):
        with pytest.raises(ValidationError):
            RecordInvocationParams.model_validate({"command_id": "a", "execution_time_ms": -1})

    def test_record_invocation_requires_command(self):
        with pytest.raises(ValidationError):
            RecordInvocationParams.model_validate({})

    def test_record_query_negative_count(self):
        with pytest.raises(ValidationError):
            RecordQueryParams.model_validate({"query": "q", "result_count": -2})

    def test_resource_optional_fields(self):
        p = RecordResourceParams.model_validate({"kind": "pod", "name": "web"})
        assert p.namespace is None
        assert p.context is None

    def test_limit_non_negative(self):
        assert LimitParams.model_validate({}).limit == 10
        with pytest.raises(ValidationError):
            LimitParams.model_validate({"limit": -1})

    def test_resource_list_kind_alias(self):
        assert ResourceListParams.model_validate({"kind": "pod"}).kind_filter == "pod"
        assert ResourceListParams.model_validate({"kind_filter": "svc"}).kind_filter == "svc"

    def test_detect_bounds(self):
        p = DetectPatternsParams.model_validate({"min_len": 2, "max_len": 4})
        assert (p.min_sequence_length, p.max_sequence_length) == (2, 4)
        with pytest.raises(ValidationError):
            DetectPatternsParams.model_validate({"min_sequence_length": 1})
        with pytest.raises(ValidationError):
            DetectPatternsParams.model_validate({"min_len": 4, "max_len": 3})

    def test_detect_defaults_are_unset(self):
        p = DetectPatternsParams.model_validate({})
        assert p.min_sequence_length is None
        assert p.max_sequence_length is None

    def test_get_patterns_confidence_range(self):
        with pytest.raises(ValidationError):
            GetPatternsParams.model_validate({"min_confidence": 1.5})

    def test_suggestion_requires_list(self):
        p = PatternSuggestionParams.model_validate({"last_commands": ["a", "b"]})
        assert p.limit == 5
        with pytest.raises(ValidationError):
            PatternSuggestionParams.model_validate({"last_commands": "a"})


class TestErrorResponses:
    def test_error_response_envelope(self):
        err = error_response(METHOD_NOT_FOUND, "Method not found: x", 3, data={"method": "x"})
        assert err.model_dump() == {
            "jsonrpc": "2.0",
            "error": {"code": METHOD_NOT_FOUND, "message": "Method not found: x", "data": {"method": "x"}},
            "id": 3,
        }

    def test_codes_are_distinct(self):
        codes = {
            PARSE_ERROR,
            INVALID_REQUEST,
            METHOD_NOT_FOUND,
            INVALID_PARAMS,
            INTERNAL_ERROR,
            STORE_UNAVAILABLE,
            STORE_QUERY_FAILED,
        }
        assert len(codes) == 7

    def test_describe_validation_error_names_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            RecordQueryParams.model_validate({"result_count": -1})
        text = describe_validation_error(exc_info.value)
        assert "query: Field required" in text
        assert "result_count:" in text


class TestErrorFromException:
    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (StoreUnavailableError("db gone"), STORE_UNAVAILABLE),
            (StoreQueryError("disk full"), STORE_QUERY_FAILED),
            (HistoryStoreError("generic"), INTERNAL_ERROR),
        ],
    )
    def test_store_errors_keep_message(self, exc: HistoryStoreError, code: int):
        err = error_from_exception(exc, 9)
        assert isinstance(err, JsonRpcError)
        assert err.error.code == code
        assert err.error.message == str(exc)
        assert err.id == 9

    def test_validation_error_is_invalid_params(self):
        with pytest.raises(ValidationError) as exc_info:
            LimitParams.model_validate({"limit": -3})
        err = error_from_exception(exc_info.value, 1)
        assert err.error.code == INVALID_PARAMS
        assert err.error.message.startswith("Invalid params: limit:")

    @pytest.mark.parametrize("exc", [ValueError("limit must be >= 0"), TypeError("bad arg")])
    def test_argument_errors_are_invalid_params(self, exc: Exception):
        assert error_from_exception(exc, 1).error.code == INVALID_PARAMS

    @pytest.mark.parametrize("exc", [KeyError("missing"), RuntimeError("boom"), AttributeError("x")])
    def test_other_errors_are_internal(self, exc: Exception):
        err = error_from_exception(exc, "req-1")
        assert err.error.code == INTERNAL_ERROR
        assert err.id == "req-1"
