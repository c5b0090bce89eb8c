"""
Runtime execution layer for the gamebook engine.

This module coordinates the flow:
Section text → Narrative Interpreter → Action Applier → Session State
"""

from runtime.session import PlaySession, TurnResult, new_action_sheet

__all__ = ["PlaySession", "TurnResult", "new_action_sheet"]
