"""RequestExecutor 单元测试.

使用 httpx.MockTransport 模拟集群节点，覆盖成功返回、故障转移、
连接超时重试、全部节点失败和失败分类。
"""

import random
import socket
import threading
import time
from unittest.mock import MagicMock, patch

import httpx
import pytest

from elasticrelay.connection.models import ConnectionConfig, Endpoint
from elasticrelay.connection.tool import ConnectionRegistry
from elasticrelay.transport.exceptions import ExhaustedEndpointsError, TransportError
from elasticrelay.transport.executor import RequestExecutor, classify_error
from elasticrelay.transport.models import TransportErrorKind

SLEEP_PATCH_PATH = "elasticrelay.transport.executor.time.sleep"


# ============================================================
# 辅助 fixtures
# ============================================================


class KeepOrder(random.Random):
    """保持配置顺序的随机数生成器，使节点遍历顺序可预测."""

    def shuffle(self, x, *args, **kwargs) -> None:
        pass


def make_executor(handler, hosts=("es1", "es2", "es3"), **config) -> RequestExecutor:
    """创建使用 MockTransport 的执行器."""
    registry = ConnectionRegistry([Endpoint(h, 9200) for h in hosts], rng=KeepOrder())
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RequestExecutor(registry, ConnectionConfig(**config), http_client=client)


class Recorder:
    """记录请求并按主机返回预设结果的处理器."""

    def __init__(self, behaviours: dict):
        self.behaviours = behaviours
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        behaviour = self.behaviours.get(request.url.host)
        if behaviour is None:
            return httpx.Response(200, json={"ok": True, "host": request.url.host})
        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour

    @property
    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]


class TrickleStream(httpx.SyncByteStream):
    """逐字节缓慢返回的响应体."""

    def __init__(self, content: bytes, pause: float = 0.05):
        self.content = content
        self.pause = pause

    def __iter__(self):
        for i in range(len(self.content)):
            # time.sleep 已被屏蔽，这里使用 Event.wait 真实等待
            threading.Event().wait(self.pause)
            yield self.content[i : i + 1]


@pytest.fixture(autouse=True)
def no_sleep():
    """屏蔽重试等待."""
    with patch(SLEEP_PATCH_PATH) as mock_sleep:
        yield mock_sleep


# ============================================================
# 成功路径
# ============================================================


class TestExecuteSuccess:
    """成功返回测试."""

    def test_first_endpoint_success(self) -> None:
        """测试第一个节点成功时立即返回."""
        recorder = Recorder({})
        executor = make_executor(recorder)

        response = executor.execute("/users/_search", "GET", {"query": {"match_all": {}}})

        assert response.body == {"ok": True, "host": "es1"}
        assert response.status == 200
        assert response.endpoint == Endpoint("es1", 9200)
        assert response.endpoints_tried == 1
        assert response.attempts == 1
        assert recorder.hosts == ["es1"]

    def test_request_url_and_method(self) -> None:
        """测试请求地址由协议、节点和路径组成."""
        recorder = Recorder({})
        executor = make_executor(recorder)

        executor.execute("/users/doc/1?refresh=true", "put", {"name": "Alice"})

        request = recorder.requests[0]
        assert str(request.url) == "http://es1:9200/users/doc/1?refresh=true"
        assert request.method == "PUT"

    def test_structured_payload_encoded_as_json(self) -> None:
        """测试映射负载以 JSON 发送."""
        recorder = Recorder({})
        executor = make_executor(recorder)

        executor.execute("/users/doc", "POST", {"name": "Alice"})

        request = recorder.requests[0]
        assert request.content == b'{"name":"Alice"}'
        assert request.headers["content-type"] == "application/json"

    def test_raw_payload_sent_as_is(self) -> None:
        """测试字符串负载原样发送，并使用指定的 Content-Type."""
        recorder = Recorder({})
        executor = make_executor(recorder)
        raw = '{"index":{"_index":"users"}}\n{"name":"Alice"}\n'

        executor.execute("/_bulk", "POST", raw, content_type="application/x-ndjson")

        request = recorder.requests[0]
        assert request.content == raw.encode("utf-8")
        assert request.headers["content-type"] == "application/x-ndjson"

    @pytest.mark.parametrize("payload", [None, False, "", {}, []])
    def test_empty_payload_sends_no_body(self, payload) -> None:
        """测试空负载不发送请求体."""
        recorder = Recorder({})
        executor = make_executor(recorder)

        executor.execute("/users", "GET", payload)

        assert recorder.requests[0].content == b""

    def test_http_error_status_is_transport_success(self) -> None:
        """测试收到错误状态码也视为传输成功，错误作为数据返回."""
        body = {"error": "IndexMissingException[[users] missing]", "status": 404}
        recorder = Recorder({"es1": httpx.Response(404, json=body)})
        executor = make_executor(recorder)

        response = executor.execute("/users/doc/1")

        assert response.body == body
        assert response.status == 404
        assert response.has_error
        assert recorder.hosts == ["es1"]

    def test_non_json_body_synthesized(self) -> None:
        """测试无法解码为 JSON 的响应被合成为 error/code."""
        recorder = Recorder({"es1": httpx.Response(502, text="Bad Gateway")})
        executor = make_executor(recorder)

        response = executor.execute("/users")

        assert response.body == {"error": "Bad Gateway", "code": 502}

    def test_empty_body_synthesized(self) -> None:
        """测试空响应体被合成为 error/code."""
        recorder = Recorder({"es1": httpx.Response(200, content=b"")})
        executor = make_executor(recorder)

        assert executor.execute("/users").body == {"error": "", "code": 200}


# ============================================================
# 故障转移与重试
# ============================================================


class TestFailover:
    """故障转移测试."""

    def test_connection_refused_moves_to_next(self, no_sleep) -> None:
        """测试连接被拒绝时换下一个节点且不重试."""
        recorder = Recorder({"es1": httpx.ConnectError("[Errno 111] Connection refused")})
        executor = make_executor(recorder)

        response = executor.execute("/users")

        assert recorder.hosts == ["es1", "es2"]
        assert response.endpoint == Endpoint("es2", 9200)
        assert response.endpoints_tried == 2
        no_sleep.assert_not_called()

    def test_request_timeout_moves_to_next(self, no_sleep) -> None:
        """测试请求超时时不重试同一节点."""
        recorder = Recorder({"es1": httpx.ReadTimeout("timed out")})
        executor = make_executor(recorder)

        response = executor.execute("/users")

        assert recorder.hosts == ["es1", "es2"]
        assert response.endpoints_tried == 2
        no_sleep.assert_not_called()

    def test_slow_body_exceeds_request_timeout(self, no_sleep) -> None:
        """测试响应体缓慢到达时按总耗时超时并换下一个节点."""
        recorder = Recorder({"es1": httpx.Response(200, stream=TrickleStream(b'{"ok": true}'))})
        executor = make_executor(recorder, request_timeout=100)

        started = time.monotonic()
        response = executor.execute("/users")

        assert time.monotonic() - started < 0.5
        assert recorder.hosts == ["es1", "es2"]
        assert response.endpoint == Endpoint("es2", 9200)
        assert response.body == {"ok": True, "host": "es2"}
        no_sleep.assert_not_called()

    def test_slow_body_on_every_endpoint(self) -> None:
        """测试所有节点都超过总耗时时最后错误为请求超时."""

        def handler(request):
            return httpx.Response(200, stream=TrickleStream(b'{"ok": true}'))

        executor = make_executor(handler, hosts=("es1", "es2"), request_timeout=100)

        with pytest.raises(ExhaustedEndpointsError) as exc_info:
            executor.execute("/users")

        assert exc_info.value.last_error.kind is TransportErrorKind.REQUEST_TIMEOUT

    def test_slow_body_without_request_timeout(self) -> None:
        """测试 request_timeout 为 0 时不限制总耗时."""
        recorder = Recorder({"es1": httpx.Response(200, stream=TrickleStream(b'{"a":1}', pause=0.01))})
        executor = make_executor(recorder, request_timeout=0)

        response = executor.execute("/users")

        assert recorder.hosts == ["es1"]
        assert response.body == {"a": 1}

    def test_connect_timeout_retries_same_endpoint(self, no_sleep) -> None:
        """测试连接超时时对同一节点重试，重试耗尽后换下一个节点."""
        recorder = Recorder({"es1": httpx.ConnectTimeout("connect timed out")})
        executor = make_executor(recorder, connect_retries=3, retry_backoff=1.0)

        response = executor.execute("/users")

        assert recorder.hosts == ["es1", "es1", "es1", "es1", "es2"]
        assert response.attempts == 5
        assert response.endpoints_tried == 2
        assert no_sleep.call_count == 3
        no_sleep.assert_called_with(1.0)

    def test_connect_timeout_then_success(self) -> None:
        """测试连接超时后重试成功."""
        outcomes = [httpx.ConnectTimeout("connect timed out")]

        def handler(request):
            if outcomes:
                raise outcomes.pop()
            return httpx.Response(200, json={"ok": True})

        executor = make_executor(handler)
        response = executor.execute("/users")

        assert response.endpoint == Endpoint("es1", 9200)
        assert response.attempts == 2
        assert response.endpoints_tried == 1

    def test_retry_count_is_per_endpoint(self, no_sleep) -> None:
        """测试每个节点都有独立的重试次数."""
        timeout = httpx.ConnectTimeout("connect timed out")
        recorder = Recorder({"es1": timeout, "es2": timeout})
        executor = make_executor(recorder, connect_retries=2)

        executor.execute("/users")

        assert recorder.hosts == ["es1"] * 3 + ["es2"] * 3 + ["es3"]
        assert no_sleep.call_count == 4

    def test_new_call_starts_fresh(self) -> None:
        """测试节点失败不会影响下一次调用."""
        recorder = Recorder({"es1": httpx.ConnectError("Connection refused")})
        executor = make_executor(recorder)

        executor.execute("/users")
        executor.execute("/users")

        assert recorder.hosts == ["es1", "es2", "es1", "es2"]


class TestExhaustedEndpoints:
    """全部节点失败测试."""

    def test_all_endpoints_down(self) -> None:
        """测试全部节点不可达时每个节点只尝试一次并抛出异常."""
        refused = httpx.ConnectError("Connection refused")
        recorder = Recorder({"es1": refused, "es2": refused, "es3": refused})
        executor = make_executor(recorder)

        with pytest.raises(ExhaustedEndpointsError) as exc_info:
            executor.execute("/users/doc", "post", {"name": "Alice"})

        error = exc_info.value
        assert recorder.hosts == ["es1", "es2", "es3"]
        assert error.kind is TransportErrorKind.EXHAUSTED_ENDPOINTS
        assert error.endpoints_tried == 3
        assert error.method == "POST"
        assert error.payload == {"name": "Alice"}
        assert error.last_error.kind is TransportErrorKind.CONNECTION_REFUSED
        assert error.last_error.endpoint == Endpoint("es3", 9200)
        assert "es3" in error.message

    def test_all_connect_timeouts_bounded(self, no_sleep) -> None:
        """测试全部连接超时时重试次数有上限，不会无限循环."""
        recorder = Recorder(
            {h: httpx.ConnectTimeout("connect timed out") for h in ("es1", "es2")}
        )
        executor = make_executor(recorder, hosts=("es1", "es2"), connect_retries=3)

        with pytest.raises(ExhaustedEndpointsError) as exc_info:
            executor.execute("/users")

        assert len(recorder.requests) == 8
        assert no_sleep.call_count == 6
        assert exc_info.value.last_error.kind is TransportErrorKind.CONNECT_TIMEOUT

    def test_no_endpoints_raises_transport_error(self) -> None:
        """测试注册表没有返回任何节点时抛出传输异常而不是断言失败."""
        registry = MagicMock(spec=ConnectionRegistry)
        registry.endpoints.return_value = []
        client = httpx.Client(transport=httpx.MockTransport(Recorder({})))
        executor = RequestExecutor(registry, http_client=client)

        with pytest.raises(TransportError) as exc_info:
            executor.execute("/users", "GET")

        assert exc_info.value.kind is TransportErrorKind.EXHAUSTED_ENDPOINTS
        assert exc_info.value.method == "GET"

    def test_last_error_is_reported(self) -> None:
        """测试异常携带最后一次观察到的错误."""
        recorder = Recorder(
            {
                "es1": httpx.ConnectError("Connection refused"),
                "es2": httpx.ReadTimeout("timed out"),
            }
        )
        executor = make_executor(recorder, hosts=("es1", "es2"))

        with pytest.raises(ExhaustedEndpointsError) as exc_info:
            executor.execute("/users")

        assert exc_info.value.last_error.kind is TransportErrorKind.REQUEST_TIMEOUT
        assert exc_info.value.last_error.url == "http://es2:9200/users"


# ============================================================
# 失败分类
# ============================================================


def _connect_error_from(cause: BaseException) -> httpx.ConnectError:
    try:
        try:
            raise cause
        except BaseException as e:
            raise httpx.ConnectError(str(e)) from e
    except httpx.ConnectError as error:
        return error


class TestClassifyError:
    """classify_error 测试."""

    @pytest.mark.parametrize(
        "exc, kind",
        [
            (httpx.UnsupportedProtocol("unsupported"), TransportErrorKind.UNSUPPORTED_PROTOCOL),
            (httpx.InvalidURL("bad url"), TransportErrorKind.MALFORMED_URL),
            (httpx.ProxyError("proxy"), TransportErrorKind.PROXY_RESOLUTION_FAILED),
            (httpx.ConnectTimeout("timeout"), TransportErrorKind.CONNECT_TIMEOUT),
            (httpx.ReadTimeout("timeout"), TransportErrorKind.REQUEST_TIMEOUT),
            (httpx.WriteTimeout("timeout"), TransportErrorKind.REQUEST_TIMEOUT),
            (httpx.ConnectError("Connection refused"), TransportErrorKind.CONNECTION_REFUSED),
            (httpx.RemoteProtocolError("closed"), TransportErrorKind.UNKNOWN),
        ],
    )
    def test_kinds(self, exc, kind) -> None:
        """测试各类 httpx 异常的分类."""
        assert classify_error(exc) is kind

    def test_dns_failure_from_cause(self) -> None:
        """测试由 socket.gaierror 引起的连接错误归类为域名解析失败."""
        exc = _connect_error_from(socket.gaierror(-2, "Name or service not known"))
        assert classify_error(exc) is TransportErrorKind.DNS_RESOLUTION_FAILED

    def test_dns_failure_from_message(self) -> None:
        """测试根据错误信息识别域名解析失败."""
        exc = httpx.ConnectError("[Errno -3] Temporary failure in name resolution")
        assert classify_error(exc) is TransportErrorKind.DNS_RESOLUTION_FAILED

    def test_refused_from_cause(self) -> None:
        """测试由 ConnectionRefusedError 引起的连接错误."""
        exc = _connect_error_from(ConnectionRefusedError(111, "Connection refused"))
        assert classify_error(exc) is TransportErrorKind.CONNECTION_REFUSED

    def test_only_connect_timeout_retries(self) -> None:
        """测试只有连接超时允许重试同一节点."""
        retryable = [k for k in TransportErrorKind if k.retry_same_endpoint]
        assert retryable == [TransportErrorKind.CONNECT_TIMEOUT]

    @pytest.mark.parametrize(
        "exc, prefix",
        [
            (httpx.RemoteProtocolError("peer closed"), "未知传输错误"),
            (httpx.DecodingError("bad gzip"), "未知错误（非网络错误）"),
        ],
    )
    def test_unknown_error_messages(self, exc, prefix) -> None:
        """测试非网络错误与未知传输错误的信息可以区分."""
        executor = make_executor(Recorder({"es1": exc}), hosts=("es1",))

        with pytest.raises(ExhaustedEndpointsError) as exc_info:
            executor.execute("/users")

        last_error = exc_info.value.last_error
        assert last_error.kind is TransportErrorKind.UNKNOWN
        assert last_error.message.startswith(prefix)
        assert last_error.__cause__ is exc


class TestLifecycle:
    """生命周期测试."""

    def test_timeout_configuration(self) -> None:
        """测试超时配置转换为秒."""
        executor = make_executor(Recorder({}), connect_timeout=500, request_timeout=6000)
        timeout = executor.timeout
        assert timeout.connect == 0.5
        assert timeout.read == 6.0

    def test_zero_timeout_means_unbounded(self) -> None:
        """测试超时为 0 时不限制."""
        executor = make_executor(Recorder({}), connect_timeout=0, request_timeout=0)
        assert executor.timeout.connect is None
        assert executor.timeout.read is None

    def test_external_client_not_closed(self) -> None:
        """测试不会关闭外部传入的 httpx.Client."""
        client = httpx.Client(transport=httpx.MockTransport(Recorder({})))
        registry = ConnectionRegistry([Endpoint("es1")])
        with RequestExecutor(registry, http_client=client):
            pass
        assert not client.is_closed
