from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from race_weekend.errors import FilterError
from race_weekend.schemas import SessionResultRow, SessionResults, SessionToSessionFilter


class SessionType(str, Enum):
    PRACTICE = "practice"
    QUALIFYING = "qualifying"
    RACE = "race"


@dataclass
class Car:
    driver_guid: str
    driver_name: str
    model: str


@dataclass
class Entrant:
    """A driver registered in the race weekend's base entry list."""

    guid: str
    name: str
    model: str
    class_id: str = ""
    fixed_setup: str = ""  # relative to the server's setups folder


@dataclass
class RaceConfig:
    legal_tyres: List[str] = field(default_factory=list)  # empty = all tyres legal
    car_tyres: Dict[str, List[str]] = field(default_factory=dict)  # car model -> compound short names


@dataclass
class Session:
    id: str
    name: str
    session_type: SessionType
    parent_ids: List[str] = field(default_factory=list)
    results: Optional[SessionResults] = None
    race_config: RaceConfig = field(default_factory=RaceConfig)

    @property
    def completed(self) -> bool:
        return self.results is not None

    def is_base(self) -> bool:
        return not self.parent_ids

    def complete(self, results: SessionResults) -> None:
        if self.completed:
            raise ValueError(f"session {self.id} already has results")
        self.results = results


@dataclass
class SessionEntrant:
    car: Car
    class_id: str
    entrant_result: SessionResultRow
    session_results: SessionResults
    session_id: str = ""
    pit_box: int = 0
    override_setup_file: str = ""

    @property
    def guid(self) -> str:
        return self.car.driver_guid

    @property
    def name(self) -> str:
        return self.car.driver_name

    def num_laps(self) -> int:
        return self.session_results.get_num_laps(self.guid, self.car.model)

    def crashes(self) -> int:
        return self.session_results.get_crashes(self.guid, self.car.model)

    def cuts(self) -> int:
        return self.session_results.get_cuts(self.guid, self.car.model)

    def total_time(self, penalty: bool = True) -> int:
        return self.session_results.get_time(self.entrant_result.total_time, self.guid, self.car.model, penalty)


@dataclass
class EntryList:
    pit_boxes: Dict[int, SessionEntrant] = field(default_factory=dict)

    def add_in_pit_box(self, entrant: SessionEntrant, pit_box: int) -> None:
        entrant.pit_box = pit_box
        self.pit_boxes[pit_box] = entrant

    def entrants(self) -> List[SessionEntrant]:
        return [self.pit_boxes[pit_box] for pit_box in sorted(self.pit_boxes)]

    def __len__(self) -> int:
        return len(self.pit_boxes)

    def __iter__(self) -> Iterator[SessionEntrant]:
        return iter(self.entrants())


class Championship(Protocol):
    def standings(self, class_id: str) -> List[str]:
        """Driver GUIDs of the class, in standings order."""

    def entrant_attendance(self, driver_guid: str) -> int:
        """Number of championship rounds the driver has attended."""


@dataclass
class StaticChampionship:
    class_standings: Dict[str, List[str]] = field(default_factory=dict)
    attendance: Dict[str, int] = field(default_factory=dict)

    def standings(self, class_id: str) -> List[str]:
        return list(self.class_standings.get(class_id, []))

    def entrant_attendance(self, driver_guid: str) -> int:
        return self.attendance.get(driver_guid, 0)


@dataclass
class RaceWeekend:
    id: str
    name: str = ""
    entry_list: List[Entrant] = field(default_factory=list)
    sessions: Dict[str, Session] = field(default_factory=dict)
    filters: Dict[Tuple[str, str], SessionToSessionFilter] = field(default_factory=dict)
    championship: Optional[Championship] = None

    def has_linked_championship(self) -> bool:
        return self.championship is not None

    def add_session(self, session: Session) -> Session:
        for parent_id in session.parent_ids:
            if parent_id not in self.sessions:
                raise ValueError(f"parent session {parent_id} is not part of race weekend {self.id}")
        if len(session.parent_ids) > 1:
            raise ValueError("a session may have at most one parent")
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: str) -> Session:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise FilterError(f"session {session_id} not found in race weekend {self.id}") from None

    def child_sessions(self, parent_id: str) -> List[Session]:
        return [s for s in self.sessions.values() if parent_id in s.parent_ids]

    def set_filter(self, parent_id: str, child_id: str, filter_config: SessionToSessionFilter) -> None:
        self.filters[(parent_id, child_id)] = filter_config

    def get_filter(self, parent_id: str, child_id: str) -> SessionToSessionFilter:
        try:
            return self.filters[(parent_id, child_id)]
        except KeyError:
            raise FilterError(f"no filter configured between sessions {parent_id} and {child_id}") from None

    def find_entrant(self, driver_guid: str) -> Optional[Entrant]:
        for entrant in self.entry_list:
            if entrant.guid == driver_guid:
                return entrant
        return None
