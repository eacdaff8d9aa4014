from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from carcost.settings.model import AppState

logger = logging.getLogger(__name__)


def migrate_state(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Fill in fields added after a state was first saved. Mutates and returns `raw`.
    """
    settings = raw.setdefault("settings", {})
    if isinstance(settings, dict):
        settings.setdefault("investment_return", 0.0)
        settings.setdefault("cash_on_hand", 0.0)

    for car in raw.get("cars") or []:
        if not isinstance(car, dict):
            continue
        if car.get("overrides") is None:
            car["overrides"] = {}
        car.setdefault("insurance_cost_per_year", 0.0)
        for scenario in car.get("scenarios") or []:
            if isinstance(scenario, dict):
                scenario.setdefault("pay_in_full", False)
    return raw


def parse_state(raw: Any) -> AppState:
    if not isinstance(raw, dict) or not isinstance(raw.get("settings"), dict) or not isinstance(raw.get("cars"), list):
        raise ValueError("state must be an object with 'settings' and a 'cars' list")
    return AppState.model_validate(migrate_state(raw))


def read_state(path: str) -> AppState:
    """Saved state from `path`. Raises on a missing, unreadable or invalid file."""
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    return parse_state(raw)


def load_state(path: str) -> AppState:
    """
    Saved state from `path`, or the default state if the file is missing or unreadable.
    """
    if not os.path.exists(path):
        logger.info("no saved state at %s; using defaults", path)
        return AppState()
    try:
        return read_state(path)
    except (OSError, json.JSONDecodeError, ValueError, ValidationError) as e:
        logger.warning("ignoring unreadable state at %s: %s", path, e)
        return AppState()


def dump_state(state: AppState) -> str:
    return state.model_dump_json()


def save_state(state: AppState, path: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(dump_state(state))


def encode_share_token(state: AppState) -> str:
    data = dump_state(state).encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode_share_token(token: str) -> AppState | None:
    """State carried by a share token, or None if the token does not decode to a valid state."""
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
        return parse_state(raw)
    except (binascii.Error, UnicodeError, json.JSONDecodeError, ValueError, ValidationError) as e:
        logger.info("rejecting share token: %s", e)
        return None


class StateStore:
    """
    Mutable holder for the application state.

    Callers mutate through `update`, which validates a mutated copy before swapping
    it in, then runs the `on_change` hook (typically `lambda s: save_state(s, path)`).
    """

    def __init__(self, state: AppState | None = None, on_change: Callable[[AppState], None] | None = None):
        self.state = state if state is not None else AppState()
        self._on_change = on_change

    def update(self, mutate: Callable[[AppState], None]) -> AppState:
        draft = self.state.model_copy(deep=True)
        mutate(draft)
        # A rejected mutation leaves the current state and the hook untouched.
        self.state = AppState.model_validate(draft.model_dump())
        if self._on_change is not None:
            self._on_change(self.state)
        return self.state
