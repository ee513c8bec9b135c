from __future__ import annotations

import os


SERVER_INSTALL_PATH = os.getenv("SERVER_INSTALL_PATH", "./assetto")
RESULTS_PATH = os.getenv("RESULTS_PATH", os.path.join(SERVER_INSTALL_PATH, "results"))
SETUPS_FOLDER = "setups"
