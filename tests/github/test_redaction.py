from __future__ import annotations

from reviewprep.github.redaction import REDACTED, sanitize_for_log, sanitize_log_extra, scrub_credentials

TOKEN = "ghp_" + "a1B2c3D4e5F6g7H8i9J0k1L2m3N4o5P6q7R8"


def test_github_token_literal_is_scrubbed_from_free_text() -> None:
    scrubbed = scrub_credentials(f"GET /user failed for {TOKEN} (401)")

    assert TOKEN not in scrubbed
    assert REDACTED in scrubbed
    assert scrubbed.endswith("(401)")


def test_bearer_header_is_scrubbed() -> None:
    extra = sanitize_log_extra(error="request headers: Authorization: Bearer abc.def-123 sent")

    assert "abc.def-123" not in extra["error"]
    assert f"Authorization: {REDACTED} sent" in extra["error"]


def test_credential_fields_are_redacted_whatever_their_value() -> None:
    extra = sanitize_log_extra(token="short", headers={"Authorization": "token xyz", "Accept": "application/json"})

    assert extra["token"] == REDACTED
    assert extra["headers"] == {"Authorization": REDACTED, "Accept": "application/json"}


def test_body_and_prompt_are_logged_as_sizes() -> None:
    extra = sanitize_log_extra(
        prompt="Cluster these pull requests...",
        pr={"title": "Add checkout", "body": "Long description of the change"},
    )

    assert extra["prompt"] == "<30 chars>"
    assert extra["pr"] == {"title": "Add checkout", "body": "<30 chars>"}


def test_non_string_values_pass_through() -> None:
    assert sanitize_for_log({"status_code": 403, "prs": [1, 2]}) == {"status_code": 403, "prs": [1, 2]}
