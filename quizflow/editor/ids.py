import re
from typing import Iterable, Set


class NodeIdGenerator:
    """Hands out ``node<N>`` ids for one editing session.

    The counter only moves forward, so an id is never handed out twice even
    after its node is deleted. Ids already in use (for example ids that came
    from an imported document) can be reserved and are then skipped.
    """

    PREFIX = "node"
    _PATTERN = re.compile(r"^node(\d+)$")

    def __init__(self, start: int = 1):
        self._counter = start
        self._reserved: Set[str] = set()

    @property
    def counter(self) -> int:
        """The number the next generated id will carry (before skipping)."""
        return self._counter

    def next_id(self) -> str:
        while True:
            candidate = f"{self.PREFIX}{self._counter}"
            self._counter += 1
            if candidate not in self._reserved:
                self._reserved.add(candidate)
                return candidate

    def reserve(self, ids: Iterable[str]):
        """Mark ids as taken; ``node<N>`` ids also advance the counter past N."""
        for node_id in ids:
            self._reserved.add(node_id)
            match = self._PATTERN.match(node_id)
            if match:
                self._counter = max(self._counter, int(match.group(1)) + 1)
