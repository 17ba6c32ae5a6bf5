import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import PersistenceError, UnknownWizardError
from app.flow.engine import DialogEngine, DialogInput
from app.flow.states import StepDefinition, WizardDefinition, WizardName
from utils.constants import (
    CANCELLED_MESSAGE,
    CB_CANCEL,
    CB_CONFIRM_JOIN,
    REVIEW_CHOOSE_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    TEXT_REQUIRED_MESSAGE,
)
from utils.telegram_utils import keyboard_callbacks
from utils.time_utils import utc_now

USER = 7


def make_engine(on_complete=None, max_field_length=20):
    engine = DialogEngine(lambda user_id: {"inline_keyboard": [[{"text": "menu", "callback_data": "main_menu"}]]},
                          session_timeout_minutes=30, max_field_length=max_field_length)
    completion = on_complete or AsyncMock(return_value={"text": "done"})
    engine.register(WizardDefinition(
        name=WizardName.JOIN,
        steps=[
            StepDefinition(key="region", prompt="Region?", quick_picks={"UA": "Ukraine"}),
            StepDefinition(key="nick", prompt="Nick?"),
        ],
        review_template="Region: {region}\nNick: {nick}",
        confirm_label="Submit",
        confirm_callback=CB_CONFIRM_JOIN,
        on_complete=completion,
    ))
    return engine, completion


def advance(engine, dialog_input):
    return asyncio.run(engine.advance(USER, dialog_input))


def test_enter_shows_first_prompt_with_cancel():
    engine, _ = make_engine()

    reply = engine.enter(WizardName.JOIN, USER)

    assert "Region?" in reply["text"]
    assert "Step 1 of 3" in reply["text"]
    assert CB_CANCEL in keyboard_callbacks(reply["reply_markup"])
    assert "pick_UA" in keyboard_callbacks(reply["reply_markup"])
    assert engine.get_session(USER).step_index == 0


def test_enter_unknown_wizard_raises():
    engine = DialogEngine(lambda user_id: None)

    with pytest.raises(UnknownWizardError):
        engine.enter(WizardName.REPORT, USER)


@pytest.mark.parametrize("text", [None, "", "   ", "x" * 21])
def test_bad_answers_reprompt_without_advancing(text):
    engine, _ = make_engine()
    engine.enter(WizardName.JOIN, USER)

    reply = advance(engine, DialogInput.from_text(text))

    assert "Region?" in reply["text"]
    assert engine.get_session(USER).step_index == 0
    assert engine.get_session(USER).fields == {}


def test_answers_are_stripped_and_stored():
    engine, _ = make_engine()
    engine.enter(WizardName.JOIN, USER)

    reply = advance(engine, DialogInput.from_text("  Kyiv \n"))

    assert engine.get_session(USER).fields == {"region": "Kyiv"}
    assert "Nick?" in reply["text"]


def test_quick_pick_stores_label_and_stale_pick_is_rejected():
    engine, _ = make_engine()
    engine.enter(WizardName.JOIN, USER)

    advance(engine, DialogInput.from_pick("UA"))
    stale = advance(engine, DialogInput.from_pick("UA"))

    session = engine.get_session(USER)
    assert session.fields == {"region": "Ukraine"}
    assert session.step_index == 1
    assert TEXT_REQUIRED_MESSAGE in stale["text"]


def test_review_other_input_reprompts_with_both_buttons():
    engine, completion = make_engine()
    engine.enter(WizardName.JOIN, USER)
    advance(engine, DialogInput.from_text("<b>Kyiv</b>"))
    review = advance(engine, DialogInput.from_text("neo"))

    assert "&lt;b&gt;Kyiv&lt;/b&gt;" in review["text"]

    reply = advance(engine, DialogInput.from_text("hello?"))

    assert REVIEW_CHOOSE_MESSAGE in reply["text"]
    assert keyboard_callbacks(reply["reply_markup"]) == [CB_CONFIRM_JOIN, CB_CANCEL]
    completion.assert_not_awaited()


def test_confirm_for_another_wizard_is_not_accepted():
    engine, completion = make_engine()
    engine.enter(WizardName.JOIN, USER)
    advance(engine, DialogInput.from_text("Kyiv"))
    advance(engine, DialogInput.from_text("neo"))

    advance(engine, DialogInput.confirm(WizardName.REPORT))

    completion.assert_not_awaited()
    assert engine.has_session(USER)


def test_confirm_runs_completion_once_and_ends_session():
    engine, completion = make_engine()
    engine.enter(WizardName.JOIN, USER)
    advance(engine, DialogInput.from_text("Kyiv"))
    advance(engine, DialogInput.from_text("neo"))

    reply = advance(engine, DialogInput.confirm(WizardName.JOIN))

    assert reply == {"text": "done"}
    completion.assert_awaited_once()
    assert completion.await_args.args[0].fields == {"region": "Kyiv", "nick": "neo"}
    assert not engine.has_session(USER)


def test_failed_completion_keeps_session_at_review():
    engine, completion = make_engine(on_complete=AsyncMock(side_effect=PersistenceError()))
    engine.enter(WizardName.JOIN, USER)
    advance(engine, DialogInput.from_text("Kyiv"))
    advance(engine, DialogInput.from_text("neo"))

    with pytest.raises(PersistenceError):
        advance(engine, DialogInput.confirm(WizardName.JOIN))

    session = engine.get_session(USER)
    assert session is not None
    assert session.step_index == 2


@pytest.mark.parametrize("answers", [[], ["Kyiv"], ["Kyiv", "neo"]])
def test_cancel_from_any_step(answers):
    engine, completion = make_engine()
    engine.enter(WizardName.JOIN, USER)
    for answer in answers:
        advance(engine, DialogInput.from_text(answer))

    reply = advance(engine, DialogInput.cancel())

    assert reply["text"] == CANCELLED_MESSAGE
    assert "main_menu" in keyboard_callbacks(reply["reply_markup"])
    assert not engine.has_session(USER)
    completion.assert_not_awaited()


def test_enter_discards_previous_session():
    engine, _ = make_engine()
    engine.enter(WizardName.JOIN, USER)
    advance(engine, DialogInput.from_text("Kyiv"))

    engine.enter(WizardName.JOIN, USER)

    assert engine.get_session(USER).step_index == 0
    assert engine.get_session(USER).fields == {}


def test_advance_without_session_returns_none():
    engine, _ = make_engine()

    assert advance(engine, DialogInput.from_text("hi")) is None


def test_idle_session_expires():
    engine, _ = make_engine()
    engine.enter(WizardName.JOIN, USER)
    engine.get_session(USER).last_interaction = utc_now() - timedelta(minutes=31)

    reply = advance(engine, DialogInput.from_text("Kyiv"))

    assert reply["text"] == SESSION_EXPIRED_MESSAGE
    assert not engine.has_session(USER)


def test_evict_expired_drops_only_idle_sessions():
    engine, _ = make_engine()
    engine.enter(WizardName.JOIN, 1)
    engine.enter(WizardName.JOIN, 2)
    engine.get_session(1).last_interaction = utc_now() - timedelta(hours=1)

    assert engine.evict_expired() == 1
    assert engine.active_count == 1
    assert engine.has_session(2)
