import logging

import pytest

from chat_ledger.models import UserProfile
from chat_ledger.services.admin import AdminCommandKind, handle_admin_command, parse_admin_command


@pytest.mark.parametrize(
    ("message", "kind", "argument"),
    [
        ("/help", AdminCommandKind.HELP, ""),
        ("/INFO", AdminCommandKind.HELP, ""),
        (" /commands ", AdminCommandKind.HELP, ""),
        ("/debug on", AdminCommandKind.DEBUG, "on"),
        ("/DEBUG   Off", AdminCommandKind.DEBUG, "off"),
        ("/debug", AdminCommandKind.DEBUG, ""),
        ("/reset", AdminCommandKind.RESET, ""),
        ("/clear", AdminCommandKind.RESET, ""),
        ("/note Coffee went to the wrong fund", AdminCommandKind.NOTE, "Coffee went to the wrong fund"),
        ("ps: Nice bot", AdminCommandKind.NOTE, "Nice bot"),
    ],
)
def test_parse_admin_command(message, kind, argument) -> None:
    command = parse_admin_command(message)

    assert command is not None
    assert command.kind == kind
    assert command.argument == argument


@pytest.mark.parametrize("message", ["coffee 300", "/unknown", "/debugger on", "/notebook 300", "", None])
def test_non_admin_messages(message) -> None:
    assert parse_admin_command(message) is None


def test_debug_toggle() -> None:
    profile = UserProfile(user_id="1")

    handle_admin_command(parse_admin_command("/debug on"), profile)
    assert profile.debug_mode

    status = handle_admin_command(parse_admin_command("/debug"), profile)
    assert "ON" in status.reply

    handle_admin_command(parse_admin_command("/debug 0"), profile)
    assert not profile.debug_mode


def test_reset_is_reported_not_performed() -> None:
    profile = UserProfile(user_id="1", accounts=["CARD"])

    outcome = handle_admin_command(parse_admin_command("/reset"), profile)

    assert outcome.reset
    assert profile.accounts == ["CARD"]


def test_note_is_logged(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        outcome = handle_admin_command(parse_admin_command("/note fund is wrong"), UserProfile(user_id="7"))

    assert outcome.reply.startswith("📝")
    assert "[USER_FEEDBACK] userId=7 note=fund is wrong" in caplog.text


def test_reply_uses_preferred_language() -> None:
    profile = UserProfile(user_id="1", preferred_language="ru")

    outcome = handle_admin_command(parse_admin_command("/reset"), profile)

    assert outcome.reply.startswith("🗑️ Пользователь удалён")
