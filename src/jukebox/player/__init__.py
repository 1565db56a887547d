"""Player package: playback state machine, coin ledger and external player."""

from jukebox.player.adapter import AdapterPhase, ExternalPlayerAdapter, PlayerScriptLoader
from jukebox.player.machine import PLAY_ACTIONS, PlaybackMachine
from jukebox.player.models import (
    CoinLedger,
    Direction,
    PlaybackState,
    Selection,
    Transition,
    ViewMode,
)
from jukebox.player.sync import BackendSync

__all__ = [
    "AdapterPhase",
    "BackendSync",
    "CoinLedger",
    "Direction",
    "ExternalPlayerAdapter",
    "PLAY_ACTIONS",
    "PlaybackMachine",
    "PlaybackState",
    "PlayerScriptLoader",
    "Selection",
    "Transition",
    "ViewMode",
]
