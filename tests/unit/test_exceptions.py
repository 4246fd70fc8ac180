from core.exceptions import (
    ETLException,
    NonRetryableError,
    RetryableError,
    NotInitializedError,
    WatermarkError,
    ConcurrentRunDetectedError,
    SourceReadError,
    DestinationWriteError,
    RowProjectionError,
    TransformationError,
    TransientSourceReadError,
    TransientDestinationWriteError,
)


def test_str_puts_cause_before_context():
    error = ETLException(
        "Write failed",
        context={"table_name": "InternetSales_Staging"},
        original_exception=RuntimeError("disk full")
    )

    text = str(error)
    assert text.startswith("ETLException: Write failed")
    assert text.index("Caused by: RuntimeError: disk full") < text.index("Context:")
    assert "table_name=InternetSales_Staging" in text


def test_to_dict_carries_context_and_cause():
    error = ConcurrentRunDetectedError(
        "Another run holds the load lease",
        context={"holder": "run-1"}
    )

    data = error.to_dict()
    assert data["error_type"] == "ConcurrentRunDetectedError"
    assert data["context"]["holder"] == "run-1"
    assert "error_timestamp" in data["context"]
    assert data["original_error"] is None


def test_hierarchy():
    assert issubclass(NotInitializedError, WatermarkError)
    assert issubclass(NotInitializedError, NonRetryableError)
    assert issubclass(RowProjectionError, TransformationError)
    assert issubclass(ConcurrentRunDetectedError, NonRetryableError)


def test_transient_errors_are_retryable():
    read_error = TransientSourceReadError("Read failed", context={"retry_count": 3})
    write_error = TransientDestinationWriteError("Write failed")

    assert isinstance(read_error, SourceReadError)
    assert isinstance(read_error, RetryableError)
    assert isinstance(write_error, DestinationWriteError)
    assert isinstance(write_error, RetryableError)
    assert read_error.transient is True
    assert read_error.context["transient"] is True
    assert read_error.context["retry_count"] == 3
    assert not isinstance(SourceReadError("Read failed"), RetryableError)


def test_transient_flag_is_recorded_in_context():
    read_error = SourceReadError("Read failed", transient=True)
    write_error = DestinationWriteError("Write failed", context={"batch_index": 2})

    assert read_error.transient is True
    assert read_error.context["transient"] is True
    assert write_error.transient is False
    assert write_error.context == {
        "batch_index": 2,
        "error_timestamp": write_error.timestamp.isoformat(),
        "transient": False
    }


def test_original_exception_is_chained():
    cause = ValueError("bad")
    error = ETLException("wrapped", original_exception=cause)
    assert error.__cause__ is cause
