from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


COLLISION_EVENT_TYPES = ("COLLISION_WITH_CAR", "COLLISION_WITH_ENV")


def _matches(guid: str, model: str, driver_guid: str, car_model: str) -> bool:
    return guid == driver_guid and (not car_model or model == car_model)


class ResultsModel(BaseModel):
    # results files use the game server's PascalCase keys
    model_config = ConfigDict(populate_by_name=True)


class SessionLap(ResultsModel):
    driver_guid: str = Field(alias="DriverGuid")
    driver_name: str = Field(default="", alias="DriverName")
    car_model: str = Field(default="", alias="CarModel")
    lap_time: int = Field(default=0, ge=0, alias="LapTime")
    cuts: int = Field(default=0, ge=0, alias="Cuts")
    tyre: str = Field(default="", alias="Tyre")
    timestamp: int = Field(default=0, alias="Timestamp")


class SessionEvent(ResultsModel):
    type: str = Field(alias="Type")
    driver_guid: str = Field(alias="DriverGuid")
    car_model: str = Field(default="", alias="CarModel")
    other_driver_guid: str = Field(default="", alias="OtherDriverGuid")
    impact_speed: float = Field(default=0.0, alias="ImpactSpeed")


class SessionResultRow(ResultsModel):
    driver_guid: str = Field(alias="DriverGuid")
    driver_name: str = Field(default="", alias="DriverName")
    car_model: str = Field(default="", alias="CarModel")
    class_id: str = Field(default="", alias="ClassID")
    best_lap: int = Field(default=0, ge=0, alias="BestLap")  # ms, 0 = no lap set
    total_time: int = Field(default=0, ge=0, alias="TotalTime")  # ms, 0 = unclassified
    penalty_time: int = Field(default=0, ge=0, alias="PenaltyTime")  # ms


class SessionResults(ResultsModel):
    """A session results file, and the per-driver statistics derived from it.

    Lookups match on driver GUID and, when one is given, car model, so a driver
    who swapped cars mid-session is counted per car.
    """

    track_name: str = Field(default="", alias="TrackName")
    session_type: str = Field(default="", alias="Type")
    result: List[SessionResultRow] = Field(default_factory=list, alias="Result")
    laps: List[SessionLap] = Field(default_factory=list, alias="Laps")
    events: List[SessionEvent] = Field(default_factory=list, alias="Events")

    def get_num_laps(self, driver_guid: str, car_model: str = "") -> int:
        return sum(
            1 for lap in self.laps if _matches(lap.driver_guid, lap.car_model, driver_guid, car_model)
        )

    def get_crashes(self, driver_guid: str, car_model: str = "") -> int:
        return sum(
            1
            for event in self.events
            if event.type in COLLISION_EVENT_TYPES
            and _matches(event.driver_guid, event.car_model, driver_guid, car_model)
        )

    def get_cuts(self, driver_guid: str, car_model: str = "") -> int:
        return sum(
            lap.cuts for lap in self.laps if _matches(lap.driver_guid, lap.car_model, driver_guid, car_model)
        )

    def get_time(self, total_time: int, driver_guid: str, car_model: str = "", penalty: bool = True) -> int:
        if not penalty:
            return total_time
        for row in self.result:
            if _matches(row.driver_guid, row.car_model, driver_guid, car_model):
                return total_time + row.penalty_time
        return total_time

    def get_drivers_fastest_lap(self, driver_guid: str, car_model: str = "") -> Optional[SessionLap]:
        fastest: Optional[SessionLap] = None
        for lap in self.laps:
            if not _matches(lap.driver_guid, lap.car_model, driver_guid, car_model):
                continue
            # cut laps are invalid and never count as a fastest lap
            if lap.cuts or not lap.lap_time:
                continue
            if fastest is None or lap.lap_time < fastest.lap_time:
                fastest = lap
        return fastest


class SessionToSessionFilter(BaseModel):
    """Configuration for moving entrants from a parent session into a child session."""

    # preview filters never affect a real starting grid (no tyre locking)
    is_preview: bool = False

    # 1-based [result_start, result_end) split of the parent's results
    result_start: int = Field(default=1, ge=1)
    result_end: int = Field(default=0, ge=0)

    # -1 reverses all entrants, 0 none, N the first N
    num_entrants_to_reverse: int = Field(default=0, ge=-1)

    # 1-based pit box of the first placed entrant in the child entry list
    entry_list_start: int = Field(default=1, ge=1)

    sort_type: str = ""

    force_use_tyre_from_fastest_lap: bool = False

    # results file names used by the multiple-results-file sorters
    available_results_for_sorting: List[str] = Field(default_factory=list)

    manual_driver_selection: bool = False
    selected_driver_guids: List[str] = Field(default_factory=list)
