from __future__ import annotations

import configparser
import logging
import threading
from typing import Dict, List, Optional

from race_weekend.errors import TyreLockError
from race_weekend.models import Car, EntryList, RaceWeekend, Session, SessionEntrant
from race_weekend.rules import reverse_entrants
from race_weekend.schemas import SessionResultRow, SessionResults, SessionToSessionFilter
from race_weekend.setups import build_locked_tyre_setup
from race_weekend.sorters import get_sorter


logger = logging.getLogger(__name__)

# one entry per race weekend id seen; bounded by the number of race weekends the process serves
_race_weekend_locks: Dict[str, threading.RLock] = {}
_race_weekend_locks_guard = threading.Lock()


def race_weekend_lock(race_weekend_id: str) -> threading.RLock:
    """One lock per race weekend; derivations mutate entrants and entry lists in place."""
    with _race_weekend_locks_guard:
        lock = _race_weekend_locks.get(race_weekend_id)
        if lock is None:
            lock = _race_weekend_locks[race_weekend_id] = threading.RLock()
        return lock


def _select_entrants(
    filter_config: SessionToSessionFilter, parent_session_results: List[SessionEntrant]
) -> Optional[List[SessionEntrant]]:
    if filter_config.manual_driver_selection:
        split: List[SessionEntrant] = []
        for driver_guid in filter_config.selected_driver_guids:
            for entrant in parent_session_results:
                if entrant.guid == driver_guid:
                    split.append(entrant)
                    break
        return split

    result_start = filter_config.result_start - 1
    result_end = min(filter_config.result_end, len(parent_session_results))
    if result_start > len(parent_session_results):
        return None
    return parent_session_results[result_start:result_end]


def _lock_tyre_choice(race_weekend: RaceWeekend, child_session: Session, entrant: SessionEntrant) -> None:
    fastest_lap = entrant.session_results.get_drivers_fastest_lap(entrant.guid, entrant.car.model)
    if fastest_lap is None:
        logger.warning(
            "could not find fastest lap for entrant %s (%s). will not lock their tyre choice.",
            entrant.name,
            entrant.guid,
        )
        return

    try:
        entrant.override_setup_file = build_locked_tyre_setup(race_weekend, child_session, entrant, fastest_lap)
    except (TyreLockError, OSError, configparser.Error):
        logger.exception("could not build locked tyre setup for entrant %s (%s)", entrant.name, entrant.guid)


def filter_session(
    race_weekend: RaceWeekend,
    parent_session: Session,
    child_session: Session,
    parent_session_results: List[SessionEntrant],
    child_session_entry_list: EntryList,
    filter_config: SessionToSessionFilter,
) -> None:
    """
    Move entrants from the parent session's results into the child session's entry list.

    Completed parents are sorted (and reversed, per class) first. The split is
    then taken either from the configured result range or from the manually
    selected drivers, and placed in consecutive pit boxes from entry_list_start.
    Errors loading results files propagate; tyre locking failures do not.
    """
    reversal_applied_by_sort = parent_session.completed

    if reversal_applied_by_sort and not child_session.is_base():
        sorter = get_sorter(filter_config.sort_type)
        sorter(
            race_weekend,
            parent_session,
            parent_session_results,
            filter_config,
            filter_config.num_entrants_to_reverse,
        )

    split = _select_entrants(filter_config, parent_session_results)
    if split is None:
        logger.debug(
            "result start %d is beyond the %d results of session %s, nothing to place",
            filter_config.result_start,
            len(parent_session_results),
            parent_session.id,
        )
        return

    if not reversal_applied_by_sort:
        # results are not final yet, so no sort pass reversed them
        reverse_entrants(filter_config.num_entrants_to_reverse, split)

    lock_tyres = (
        not filter_config.is_preview and parent_session.completed and filter_config.force_use_tyre_from_fastest_lap
    )

    entry_list_start = filter_config.entry_list_start - 1
    for pit_box, entrant in enumerate(split, start=entry_list_start):
        entrant.session_id = parent_session.id

        if lock_tyres:
            _lock_tyre_choice(race_weekend, child_session, entrant)

        child_session_entry_list.add_in_pit_box(entrant, pit_box)

    logger.debug(
        "placed %d entrants from session %s into session %s at pit box %d",
        len(split),
        parent_session.id,
        child_session.id,
        entry_list_start,
    )


def base_session_entrants(race_weekend: RaceWeekend, session: Session) -> List[SessionEntrant]:
    """Entrants seeded from the race weekend entry list; they carry no result data."""
    empty_results = SessionResults()
    entrants: List[SessionEntrant] = []
    for entrant in race_weekend.entry_list:
        entrants.append(
            SessionEntrant(
                car=Car(driver_guid=entrant.guid, driver_name=entrant.name, model=entrant.model),
                class_id=entrant.class_id,
                entrant_result=SessionResultRow(
                    driver_guid=entrant.guid,
                    driver_name=entrant.name,
                    car_model=entrant.model,
                    class_id=entrant.class_id,
                ),
                session_results=empty_results,
                session_id=session.id,
            )
        )
    return entrants


def session_result_entrants(race_weekend: RaceWeekend, session: Session) -> List[SessionEntrant]:
    """Entrants of a completed session, in finishing order."""
    if session.results is None:
        raise ValueError(f"session {session.id} has no results")

    entrants: List[SessionEntrant] = []
    for row in session.results.result:
        class_id = row.class_id
        if not class_id:
            weekend_entrant = race_weekend.find_entrant(row.driver_guid)
            class_id = weekend_entrant.class_id if weekend_entrant is not None else ""

        entrants.append(
            SessionEntrant(
                car=Car(driver_guid=row.driver_guid, driver_name=row.driver_name, model=row.car_model),
                class_id=class_id,
                entrant_result=row,
                session_results=session.results,
                session_id=session.id,
            )
        )
    return entrants


def session_entry_list(race_weekend: RaceWeekend, session: Session) -> EntryList:
    """
    Build a session's starting grid by filtering its parent's results into it.

    Parents that have not run yet contribute their own (preview) entry list,
    so the whole chain back to the base session is derived parent first.
    """
    with race_weekend_lock(race_weekend.id):
        entry_list = EntryList()

        if session.is_base():
            for pit_box, entrant in enumerate(base_session_entrants(race_weekend, session)):
                entry_list.add_in_pit_box(entrant, pit_box)
            return entry_list

        for parent_id in session.parent_ids:
            parent = race_weekend.get_session(parent_id)
            filter_config = race_weekend.get_filter(parent.id, session.id)

            if parent.completed:
                parent_results = session_result_entrants(race_weekend, parent)
            else:
                parent_results = session_entry_list(race_weekend, parent).entrants()

            filter_session(race_weekend, parent, session, parent_results, entry_list, filter_config)

        return entry_list
