import pytest
from _pytest.logging import LogCaptureFixture

from virgo.holdings.service.logging.configuration import LogLevel
from virgo.holdings.util.log import LoggerMixin, elapsed_time_logging


class MockClass(LoggerMixin):
    def work(self, fail: bool = False) -> None:
        with elapsed_time_logging(
            log_method=self.log.info, message_prefix="Test", skip_start=True
        ):
            if fail:
                raise RuntimeError("boom")


def test_logger_name():
    assert MockClass.logger().name == f"{__name__}.MockClass"
    assert MockClass().log is MockClass.logger()


def test_elapsed_time_logging(caplog: LogCaptureFixture):
    caplog.set_level(LogLevel.info.value)
    messages: list[str] = []
    with elapsed_time_logging(log_method=messages.append, message_prefix="GET"):
        pass
    [start, end] = messages
    assert start == "GET: Starting..."
    assert end.startswith("GET: Completed. (elapsed time:")


def test_elapsed_time_logging_instance(caplog: LogCaptureFixture):
    caplog.set_level(LogLevel.info.value)
    MockClass().work()
    [record] = caplog.records
    assert record.name == f"{__name__}.MockClass"
    assert "Test: Completed. (elapsed time:" in record.message


def test_elapsed_time_logging_failure(caplog: LogCaptureFixture):
    caplog.set_level(LogLevel.info.value)
    with pytest.raises(RuntimeError):
        MockClass().work(fail=True)
    [record] = caplog.records
    assert "Test: Failed (raised RuntimeError). (elapsed time:" in record.message
