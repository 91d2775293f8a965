import logging

from fdp_support.utils.logging_redaction import RedactingFilter, install_redaction_filter, redact_message


def test_redacts_cnic_and_phone():
    message = redact_message("Beneficiary 35202-1234567-1 reachable at 0300-1234567")
    assert "35202-1234567-1" not in message
    assert "0300-1234567" not in message
    assert "[CNIC]" in message and "[PHONE]" in message


def test_redacts_bare_cnic_and_international_phone():
    assert redact_message("cnic 3520212345671") == "cnic [CNIC]"
    assert redact_message("call +923001234567") == "call [PHONE]"


def test_redacts_credentials():
    message = redact_message(
        "db postgresql://fdp_user:hunter2@db:5432/fdp password=abc token: xyz Bearer eyJhbGci.payload"
    )
    assert "hunter2" not in message
    assert "abc" not in message
    assert "xyz" not in message
    assert "eyJhbGci" not in message


def test_amounts_and_family_ids_untouched():
    text = "Rejected health contribution for family FDP-0042: cap 468000, used 400000, candidate 70000"
    assert redact_message(text) == text


def test_filter_rewrites_record_args():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "CNIC %s", ("35202-1234567-1",), None)
    assert RedactingFilter().filter(record) is True
    assert record.getMessage() == "CNIC [CNIC]"


def test_install_is_idempotent():
    handler = logging.StreamHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        install_redaction_filter()
        install_redaction_filter()
        assert sum(isinstance(f, RedactingFilter) for f in handler.filters) == 1
    finally:
        root.removeHandler(handler)
