"""
Ångra/gör om för rutter baserat på snapshots
"""

from typing import List, Optional

from models import Route, RouteSnapshot


class UndoLedger:
    """
    Två stackar med snapshots för linjär ångra/gör om

    En ny checkpoint tömmer redo-stacken, så en redigering efter ångra
    överger den ångrade framtiden.
    """

    def __init__(self):
        self._undo: List[RouteSnapshot] = []
        self._redo: List[RouteSnapshot] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def checkpoint(self, snapshot: Optional[RouteSnapshot]) -> None:
        if snapshot is None:
            return
        self._undo.append(snapshot)
        self._redo.clear()

    def undo(self, route: Optional[Route]) -> None:
        """Återställ rutten till senaste checkpoint, nuvarande läge sparas för gör om"""
        if route is None or not self._undo:
            return
        current = route.snapshot()
        previous = self._undo.pop()
        self._redo.append(current)
        route.restore(previous)

    def redo(self, route: Optional[Route]) -> None:
        if route is None or not self._redo:
            return
        current = route.snapshot()
        following = self._redo.pop()
        self._undo.append(current)
        route.restore(following)

    def reset(self) -> None:
        self._undo.clear()
        self._redo.clear()
