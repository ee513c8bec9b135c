from __future__ import annotations

import logging
import random
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from race_weekend.models import RaceWeekend, Session, SessionEntrant
from race_weekend.results import load_result
from race_weekend.rules import (
    best_lap_in_results_key,
    best_lap_key,
    reverse_entrants,
    session_tie_break_key,
    sort_drivers_with_no_championship_races_to_back_of_grid,
    sort_drivers_with_no_time_to_back_of_grid,
    total_time_key,
)
from race_weekend.schemas import SessionToSessionFilter


logger = logging.getLogger(__name__)

Sorter = Callable[[RaceWeekend, Session, List[SessionEntrant], Optional[SessionToSessionFilter]], None]
ClassSorter = Callable[
    [RaceWeekend, Session, List[SessionEntrant], Optional[SessionToSessionFilter], int], None
]

UNCHANGED_KEY = ""
CHAMPIONSHIP_STANDINGS_ORDER_KEY = "championship_standings_order"
CHAMPIONSHIP_CLASS_KEY = "championship_class"


@dataclass(frozen=True)
class SorterDescription:
    name: str
    key: str
    sorter: Sorter
    needs_parent_session: bool
    needs_championship: bool
    show_in_manage_entry_list: bool


def unchanged_sort(
    _race_weekend: RaceWeekend,
    _session: Session,
    _entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    return None


def fastest_lap_sort(
    _race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    entrants.sort(key=best_lap_key)


def total_race_time_sort(
    _race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    entrants.sort(key=total_time_key)


def fastest_results_file_sort(
    _race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    filter_config: Optional[SessionToSessionFilter],
) -> None:
    if filter_config is None:
        return

    best_driver_laps: Dict[str, int] = {}
    for result_file in filter_config.available_results_for_sorting:
        result = load_result(result_file)
        for row in result.result:
            current = best_driver_laps.get(row.driver_guid, 0)
            if row.best_lap and (current == 0 or row.best_lap < current):
                best_driver_laps[row.driver_guid] = row.best_lap

    entrants.sort(key=lambda e: best_lap_in_results_key(best_driver_laps, e.guid))


def number_results_file_sort(
    _race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    filter_config: Optional[SessionToSessionFilter],
) -> None:
    if filter_config is None:
        return

    num_driver_laps: Dict[str, int] = defaultdict(int)
    for result_file in filter_config.available_results_for_sorting:
        result = load_result(result_file)
        for row in result.result:
            num_driver_laps[row.driver_guid] += result.get_num_laps(row.driver_guid, row.car_model)

    entrants.sort(key=lambda e: -num_driver_laps.get(e.guid, 0))


def fewest_collisions_sort(
    _race_weekend: RaceWeekend,
    session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    tie_break = session_tie_break_key(session.session_type)
    entrants.sort(key=lambda e: (e.crashes(), tie_break(e)))


def fewest_cuts_sort(
    _race_weekend: RaceWeekend,
    session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    tie_break = session_tie_break_key(session.session_type)
    entrants.sort(key=lambda e: (e.cuts(), tie_break(e)))


def safety_sort(
    _race_weekend: RaceWeekend,
    session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    tie_break = session_tie_break_key(session.session_type)
    entrants.sort(key=lambda e: (e.crashes(), e.cuts(), tie_break(e)))


def random_sort(
    _race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    random.Random(time.time_ns()).shuffle(entrants)


def alphabetical_sort(
    _race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    entrants.sort(key=lambda e: e.name)


def championship_standings_order_sort(
    race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    if not race_weekend.has_linked_championship() or not entrants:
        return

    # called once per class, so every entrant here shares the first one's class
    standings = race_weekend.championship.standings(entrants[0].class_id)
    positions: Dict[str, int] = {}
    for pos, driver_guid in enumerate(standings):
        positions.setdefault(driver_guid, pos)

    entrants.sort(key=lambda e: positions.get(e.guid, len(standings)))


def championship_class_sort(
    race_weekend: RaceWeekend,
    _session: Session,
    entrants: List[SessionEntrant],
    _filter: Optional[SessionToSessionFilter],
) -> None:
    if not race_weekend.has_linked_championship() or not entrants:
        return
    entrants.sort(key=lambda e: e.class_id)


RACE_WEEKEND_ENTRY_LIST_SORTERS: List[SorterDescription] = [
    SorterDescription(
        name="No Sort (Use Finishing Grid)",
        key=UNCHANGED_KEY,
        sorter=unchanged_sort,
        needs_parent_session=False,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Fastest Lap",
        key="fastest_lap",
        sorter=fastest_lap_sort,
        needs_parent_session=True,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Total Race Time",
        key="total_race_time",
        sorter=total_race_time_sort,
        needs_parent_session=True,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Fastest Lap Across Multiple Results Files",
        key="fastest_multi_results_lap",
        sorter=fastest_results_file_sort,
        needs_parent_session=False,
        needs_championship=False,
        show_in_manage_entry_list=False,
    ),
    SorterDescription(
        name="Number of Laps Across Multiple Results Files",
        key="number_multi_results_lap",
        sorter=number_results_file_sort,
        needs_parent_session=False,
        needs_championship=False,
        show_in_manage_entry_list=False,
    ),
    SorterDescription(
        name="Fewest Collisions",
        key="fewest_collisions",
        sorter=fewest_collisions_sort,
        needs_parent_session=True,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Fewest Cuts",
        key="fewest_cuts",
        sorter=fewest_cuts_sort,
        needs_parent_session=True,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Safety (Collisions then Cuts)",
        key="safety",
        sorter=safety_sort,
        needs_parent_session=True,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Championship Standings Order",
        key=CHAMPIONSHIP_STANDINGS_ORDER_KEY,
        sorter=championship_standings_order_sort,
        needs_parent_session=False,
        needs_championship=True,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Championship Class",
        key=CHAMPIONSHIP_CLASS_KEY,
        sorter=championship_class_sort,
        needs_parent_session=False,
        needs_championship=True,
        show_in_manage_entry_list=False,
    ),
    SorterDescription(
        name="Random",
        key="random",
        sorter=random_sort,
        needs_parent_session=False,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
    SorterDescription(
        name="Alphabetical (Using Driver Name)",
        key="alphabetical",
        sorter=alphabetical_sort,
        needs_parent_session=False,
        needs_championship=False,
        show_in_manage_entry_list=True,
    ),
]


def get_sorter_description(key: str) -> SorterDescription:
    """Catalog entry for key; unknown or blank keys resolve to the unchanged sort."""
    for description in RACE_WEEKEND_ENTRY_LIST_SORTERS:
        if description.key == key:
            return description

    logger.debug("unknown sort type %r, falling back to unchanged", key)
    return RACE_WEEKEND_ENTRY_LIST_SORTERS[0]


def get_sorter(key: str) -> ClassSorter:
    return per_class_sort(get_sorter_description(key))


def sorters_for(needs_parent_session: bool = True, has_championship: bool = False) -> List[SorterDescription]:
    """Sorters a caller may offer, given whether a parent session and a championship exist."""
    return [
        d
        for d in RACE_WEEKEND_ENTRY_LIST_SORTERS
        if (needs_parent_session or not d.needs_parent_session)
        and (has_championship or not d.needs_championship)
    ]


def per_class_sort(description: SorterDescription) -> ClassSorter:
    """
    Wrap a sorter so that it runs once per entrant class.

    Classes are laid out one after another: fastest class first when every
    class has a lap time, by class id on base sessions (no lap data yet), or
    in order of first appearance otherwise. Within each class the sorter runs,
    the first num_entrants_to_reverse entrants are reversed and entrants with
    no result are moved to the back.
    """
    sorter = description.sorter

    def sort(
        race_weekend: RaceWeekend,
        session: Session,
        all_entrants: List[SessionEntrant],
        filter_config: Optional[SessionToSessionFilter],
        num_entrants_to_reverse: int = 0,
    ) -> None:
        championship_linked = race_weekend.has_linked_championship()

        if description.key == CHAMPIONSHIP_CLASS_KEY and championship_linked:
            # a stable non-results based grouping; nothing else is applied
            sorter(race_weekend, session, all_entrants, filter_config)
            return

        fastest_lap_for_class: Dict[str, int] = {}
        entrants_for_class: Dict[str, List[SessionEntrant]] = {}

        for entrant in all_entrants:
            class_id = entrant.class_id
            entrants_for_class.setdefault(class_id, []).append(entrant)

            best_lap = entrant.entrant_result.best_lap
            if best_lap > 0 and (class_id not in fastest_lap_for_class or best_lap < fastest_lap_for_class[class_id]):
                fastest_lap_for_class[class_id] = best_lap

        classes = list(entrants_for_class)
        if len(fastest_lap_for_class) == len(classes):
            classes.sort(key=lambda c: fastest_lap_for_class[c])
        elif session.is_base():
            classes.sort()

        last_start_pos = 0
        for class_id in classes:
            entrants = entrants_for_class[class_id]

            sorter(race_weekend, session, entrants, filter_config)
            reverse_entrants(num_entrants_to_reverse, entrants)

            if description.key == CHAMPIONSHIP_STANDINGS_ORDER_KEY and championship_linked:
                sort_drivers_with_no_championship_races_to_back_of_grid(race_weekend.championship, entrants)
            else:
                sort_drivers_with_no_time_to_back_of_grid(entrants)

            all_entrants[last_start_pos : last_start_pos + len(entrants)] = entrants
            last_start_pos += len(entrants)

    return sort
