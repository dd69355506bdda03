from __future__ import annotations

from enum import StrEnum
from typing import Literal

from statemachine import State, StateMachine

from typefall.api.models import GamePhase, SessionState


Trigger = Literal["start", "pause", "resume", "end", "to_menu"]


class SessionStage(StrEnum):
    """Controller stages. `paused` is stored on the model as phase=playing + paused=True."""

    menu = "menu"
    playing = "playing"
    paused = "paused"
    game_over = "game_over"


def stage_of(state: SessionState) -> SessionStage:
    if state.phase == GamePhase.playing:
        return SessionStage.paused if state.paused else SessionStage.playing
    return SessionStage(state.phase.value)


class SessionFSM(StateMachine):
    """FSM wrapper around SessionState.

    - stages: menu -> playing <-> paused -> game_over -> menu; start re-enters playing from anywhere.
    - gameplay effects (resets, scoring) live in the reducer; the FSM only guards transitions.
    """

    menu = State(SessionStage.menu.value, value=SessionStage.menu.value, initial=True)
    playing = State(SessionStage.playing.value, value=SessionStage.playing.value)
    paused = State(SessionStage.paused.value, value=SessionStage.paused.value)
    game_over = State(SessionStage.game_over.value, value=SessionStage.game_over.value)

    start = menu.to(playing) | playing.to.itself() | paused.to(playing) | game_over.to(playing)
    pause = playing.to(paused)
    resume = paused.to(playing)
    end = playing.to(game_over) | paused.to(game_over)
    to_menu = playing.to(menu) | paused.to(menu) | game_over.to(menu)

    def __init__(self, session: SessionState):
        self.session = session
        super().__init__(start_value=stage_of(session).value)

    @property
    def stage(self) -> SessionStage:
        return SessionStage(str(self.current_state.value))

    @property
    def is_running(self) -> bool:
        """True when ticks should have effect."""
        return self.stage == SessionStage.playing

    def allowed(self, trigger: Trigger) -> bool:
        return trigger in {e.id for e in self.allowed_events}

    def apply(self, trigger: Trigger) -> SessionStage:
        """Send `trigger` and write the new stage back onto the session.

        Raises `TransitionNotAllowed` when the current stage has no such transition.
        """

        self.send(trigger)
        self.sync_phase_to_model()
        return self.stage

    def sync_phase_to_model(self) -> None:
        stage = self.stage
        if stage == SessionStage.paused:
            self.session.phase = GamePhase.playing
            self.session.paused = True
        else:
            self.session.phase = GamePhase(stage.value)
            self.session.paused = False
