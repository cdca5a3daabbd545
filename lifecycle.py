class ViewToken:
    """Handed out when a view starts loading; goes stale when superseded."""

    def __init__(self, scope: "ViewScope", generation: int) -> None:
        self._scope = scope
        self._generation = generation

    @property
    def active(self) -> bool:
        return self._scope.is_current(self._generation)


class ViewScope:
    """Stale-response guard for a view that loads data asynchronously.

    Each ``enter()`` supersedes the tokens handed out before it, and
    ``leave()`` invalidates them all. A loader checks ``token.active`` after
    its awaits and drops the result if the view has moved on.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._generation = 0
        self._open = False

    def enter(self) -> ViewToken:
        self._generation += 1
        self._open = True
        return ViewToken(self, self._generation)

    def leave(self) -> None:
        self._open = False
        self._generation += 1

    @property
    def is_open(self) -> bool:
        return self._open

    def is_current(self, generation: int) -> bool:
        return self._open and generation == self._generation
