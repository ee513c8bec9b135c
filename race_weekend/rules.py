from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Tuple

from race_weekend.models import Championship, SessionEntrant, SessionType


SortKey = Tuple[int, ...]


def reverse_entrants(num_to_reverse: int, entrants: List[SessionEntrant]) -> None:
    """
    Reverse the first num_to_reverse entrants in place.
    -1 reverses everyone, 0 is a no-op; the tail past N is left untouched.
    """
    if num_to_reverse == 0:
        return
    if num_to_reverse < 0 or num_to_reverse > len(entrants):
        num_to_reverse = len(entrants)
    entrants[:num_to_reverse] = entrants[:num_to_reverse][::-1]


def best_lap_key(entrant: SessionEntrant) -> SortKey:
    best_lap = entrant.entrant_result.best_lap
    if best_lap == 0:
        # no lap set: behind everyone, and tied with every other lapless entrant
        return (1, 0, 0, 0)
    return (0, best_lap, entrant.crashes(), entrant.cuts())


def total_time_key(entrant: SessionEntrant) -> SortKey:
    return (-entrant.num_laps(), entrant.total_time(penalty=True))


def session_tie_break_key(session_type: SessionType) -> Callable[[SessionEntrant], SortKey]:
    if session_type == SessionType.RACE:
        return total_time_key
    return best_lap_key


def best_lap_in_results_key(best_driver_laps: Dict[str, int], driver_guid: str) -> SortKey:
    best_lap = best_driver_laps.get(driver_guid, 0)
    if best_lap == 0:
        return (1, 0)
    return (0, best_lap)


def _stable_zero_to_back(entrants: List[SessionEntrant], values: Sequence[int]) -> None:
    nonzero = [e for e, v in zip(entrants, values) if v != 0]
    zero = [e for e, v in zip(entrants, values) if v == 0]
    entrants[:] = nonzero + zero


def sort_drivers_with_no_time_to_back_of_grid(entrants: List[SessionEntrant]) -> None:
    _stable_zero_to_back(entrants, [e.entrant_result.total_time for e in entrants])


def sort_drivers_with_no_championship_races_to_back_of_grid(
    championship: Championship, entrants: List[SessionEntrant]
) -> None:
    _stable_zero_to_back(entrants, [championship.entrant_attendance(e.guid) for e in entrants])
