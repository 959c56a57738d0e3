"""Generation-scoped move learnability.

A creature's effective moves under a generation cutoff are the union of the
learnsets of the creature and every non-cosmetic pre-evolution, restricted to
version groups of that generation or earlier. The union means raising the
cutoff never removes a move.
"""

import logging
from collections import deque
from typing import Callable, Dict, FrozenSet, Iterable, List, Tuple

from moveset.models import Creature, EvolutionPredecessor, MoveSetMap, validate_generation

logger = logging.getLogger(__name__)


def pre_evolution_closure(
    creature_id: int,
    predecessors_of: Callable[[int], Iterable[EvolutionPredecessor]],
) -> List[int]:
    """Breadth-first walk backwards along evolution edges.

    Returns ``creature_id`` followed by every ancestor reached, each at most
    once. Cosmetic ancestors are neither included nor walked through, and
    the visited set makes cycles and diamonds terminate.
    """
    result = [creature_id]
    visited = {creature_id}
    queue = deque([creature_id])

    while queue:
        current = queue.popleft()
        for edge in predecessors_of(current):
            if edge.is_cosmetic or edge.predecessor_id in visited:
                continue
            visited.add(edge.predecessor_id)
            result.append(edge.predecessor_id)
            queue.append(edge.predecessor_id)

    return result


class LearnabilityResolver:
    """Resolves effective learnable moves against a ``MovesetStore``.

    Results are memoized per (creature, generation) since the reference
    dataset does not change while the engine runs. Call ``clear_cache``
    after reseeding.
    """

    def __init__(self, store):
        self.store = store
        self._version_groups: Dict[int, List[int]] = {}
        self._effective: Dict[Tuple[int, int], FrozenSet[int]] = {}

    def version_groups(self, max_generation: int) -> List[int]:
        """Version groups whose generation is at most ``max_generation``."""
        max_generation = validate_generation(max_generation)
        if max_generation not in self._version_groups:
            self._version_groups[max_generation] = self.store.get_version_groups_up_to(max_generation)
        return self._version_groups[max_generation]

    def lineage(self, creature_id: int) -> List[int]:
        """The creature plus its non-cosmetic pre-evolutions."""
        return pre_evolution_closure(creature_id, self.store.get_evolution_predecessors)

    def effective_moves(self, creature_id: int, max_generation: int) -> FrozenSet[int]:
        """Every move ``creature_id`` (or an ancestor) can learn up to ``max_generation``."""
        max_generation = validate_generation(max_generation)
        key = (creature_id, max_generation)
        if key in self._effective:
            return self._effective[key]

        # Raises CreatureNotFoundError for unknown ids
        self.store.get_creature_by_id(creature_id)

        version_groups = self.version_groups(max_generation)
        members = self.lineage(creature_id)
        moves = frozenset(self.store.get_learnable_moves(members, version_groups))
        logger.debug(
            f"Creature {creature_id} (lineage {members}) has {len(moves)} moves up to gen {max_generation}"
        )
        self._effective[key] = moves
        return moves

    def effective_move_map(self, creatures: Iterable[Creature], max_generation: int) -> MoveSetMap:
        """Effective moves for many creatures, loading learnsets and edges once.

        This is the batch path used before a combinatorial sweep: two reads
        against the store instead of a lineage walk and a query per creature.
        """
        max_generation = validate_generation(max_generation)
        version_groups = self.version_groups(max_generation)
        learnsets = self.store.get_learnset_map(version_groups)
        edges = self.store.get_all_evolution_predecessors()

        def predecessors_of(creature_id: int) -> List[EvolutionPredecessor]:
            return edges.get(creature_id, [])

        move_map: MoveSetMap = {}
        for creature in creatures:
            members = pre_evolution_closure(creature.id, predecessors_of)
            moves = set()
            for member in members:
                moves.update(learnsets.get(member, ()))
            move_map[creature.id] = frozenset(moves)
            self._effective[(creature.id, max_generation)] = move_map[creature.id]

        logger.info(f"Resolved move sets for {len(move_map)} creatures up to gen {max_generation}")
        return move_map

    def clear_cache(self) -> None:
        self._version_groups.clear()
        self._effective.clear()
