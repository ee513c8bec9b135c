from __future__ import annotations

import configparser
import logging
from pathlib import Path
from typing import Optional

from race_weekend.config import SERVER_INSTALL_PATH, SETUPS_FOLDER
from race_weekend.errors import TyreLockError, TyreNotFoundError
from race_weekend.models import RaceConfig, RaceWeekend, Session, SessionEntrant
from race_weekend.schemas import SessionLap


logger = logging.getLogger(__name__)

LOCKED_TYRE_SETUP_FOLDER = "server_manager_locked_tyres"


def find_tyre_index(car_model: str, tyre: str, race_config: RaceConfig) -> int:
    """
    Index of the tyre among the compounds the car may use in this session.
    The server numbers a car's legal compounds from zero, in the car's own order.
    """
    car_tyres = race_config.car_tyres.get(car_model)
    if not car_tyres:
        raise TyreNotFoundError(f"no tyre data for car {car_model}")

    if race_config.legal_tyres:
        legal = set(race_config.legal_tyres)
        car_tyres = [t for t in car_tyres if t in legal]

    try:
        return car_tyres.index(tyre)
    except ValueError:
        raise TyreNotFoundError(f"tyre {tyre!r} is not available for car {car_model}") from None


def _new_setup() -> configparser.ConfigParser:
    setup = configparser.ConfigParser(interpolation=None)
    setup.optionxform = str  # setup keys are upper case
    return setup


def _set(setup: configparser.ConfigParser, section: str, key: str, value: str) -> None:
    if not setup.has_section(section):
        setup.add_section(section)
    setup.set(section, key, value)


def locked_tyre_setup_path(car_model: str, driver_guid: str, session_id: str) -> Path:
    return Path(car_model) / LOCKED_TYRE_SETUP_FOLDER / f"race_weekend_session_{driver_guid}_{session_id}.ini"


def build_locked_tyre_setup(
    race_weekend: RaceWeekend,
    session: Session,
    entrant: SessionEntrant,
    fastest_lap: SessionLap,
    server_install_path: Optional[str] = None,
) -> str:
    """
    Write a setup that locks the entrant to the tyre of their fastest lap.

    A fixed setup from the race weekend entry list is used as the base when
    there is one. Returns the setup path relative to the setups folder.
    """
    tyre_index = find_tyre_index(entrant.car.model, fastest_lap.tyre, session.race_config)
    setups_dir = Path(server_install_path or SERVER_INSTALL_PATH) / SETUPS_FOLDER

    setup = _new_setup()
    weekend_entrant = race_weekend.find_entrant(entrant.guid)

    if weekend_entrant is not None and weekend_entrant.fixed_setup:
        fixed_path = setups_dir / weekend_entrant.fixed_setup
        try:
            with fixed_path.open(encoding="utf-8") as fixed:
                setup.read_file(fixed)
        except UnicodeDecodeError as exc:
            raise TyreLockError(f"fixed setup {fixed_path} is not valid UTF-8: {exc}") from exc
    else:
        _set(setup, "CAR", "MODEL", entrant.car.model)

    _set(setup, "TYRES", "VALUE", str(tyre_index))
    _set(setup, "RACE_WEEKEND", "ID", race_weekend.id)
    _set(setup, "RACE_WEEKEND", "SESSION_ID", session.id)

    relative_path = locked_tyre_setup_path(entrant.car.model, entrant.guid, session.id)
    full_path = setups_dir / relative_path
    full_path.parent.mkdir(parents=True, exist_ok=True)

    with full_path.open("w", encoding="utf-8") as out:
        setup.write(out, space_around_delimiters=False)

    logger.debug("wrote locked tyre setup %s (tyre index %d)", full_path, tyre_index)
    return relative_path.as_posix()
