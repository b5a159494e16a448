import logging

from africa_payments.services.redaction import redact_dict, redact_phone, redact_text, redact_value


def test_redact_text_masks_phone_email_and_tokens():
    text = "User fatou.ndiaye@example.com phone +221781234567 x-access-token abcdef"
    redacted = redact_text(text)
    assert "fatou.ndiaye@example.com" not in redacted
    assert "+221781234567" not in redacted
    assert redacted == "[REDACTED]"


def test_redact_text_keeps_structure_without_tokens():
    redacted = redact_text("customer fatou@example.com phone +221781234567")
    assert redacted == "customer f***@example.com phone +22178****67"


def test_redact_dict_masks_sensitive_keys():
    payload = {
        "email": "fatou@example.com",
        "phone_e164": "+221781234567",
        "PAYDUNYA-MASTER-KEY": "master",
        "PAYDUNYA-TOKEN": "tok",
        "x-access-token": "jwt",
        "hash": "deadbeef",
        "card_number": "4242424242424242",
        "password": "s3cret",
    }
    redacted = redact_dict(payload)
    assert redacted["email"] == "f***@example.com"
    assert redacted["phone_e164"] == "+22178****67"
    for key in ("PAYDUNYA-MASTER-KEY", "PAYDUNYA-TOKEN", "x-access-token", "hash", "card_number", "password"):
        assert redacted[key] == "[REDACTED]"


def test_redact_dict_recurses_into_nested_payloads():
    redacted = redact_dict({"invoice": {"token": "abc", "total_amount": 100}, "items": ["bob@example.com"]})
    assert redacted["invoice"] == {"token": "[REDACTED]", "total_amount": 100}
    assert redacted["items"] == ["b***@example.com"]


def test_redact_phone_without_plus():
    assert redact_phone("781234567") == "78****67"
    assert redact_phone("+221781234567") == "+22178****67"
    assert redact_phone(None) == ""


def test_log_line_uses_redaction_helper(caplog):
    logger = logging.getLogger("redaction-test")
    caplog.set_level(logging.INFO)
    msg = redact_text("email fatou@example.com phone +221781234567 token Bearer abcdef")
    logger.info("payload=%s", msg)
    assert "fatou@example.com" not in caplog.text
    assert "+221781234567" not in caplog.text


def test_national_msisdn_is_masked_in_text():
    assert redact_text("alias=781234567 amount=2500") == "alias=78****67 amount=2500"


def test_raw_webhook_bytes_are_decoded_then_masked():
    redacted = redact_value(b'{"phone": "+221781234567"}')
    assert redacted == '{"phone": "+22178****67"}'


def test_stripe_secrets_drop_the_whole_string():
    assert redact_text("configured with sk_test_abc123") == "[REDACTED]"
