from points_forest.logging_config import redact_sensitive


def test_sensitive_keys_masked():
    event = {"event": "auth_failed", "token": "eyJhbGciOi", "user_id": "u1"}

    assert redact_sensitive(None, "info", event) == {"event": "auth_failed", "token": "***", "user_id": "u1"}


def test_other_events_untouched():
    event = {"event": "gacha_pull_completed", "machine": "forest-standard"}

    assert redact_sensitive(None, "info", dict(event)) == event
