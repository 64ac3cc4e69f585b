"""Seed the files the Streamlit app expects to find on first run."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_RECIPE_HEADER = "name,livsmedel,amount,code,favorite"

# One fixed header row per data file.
CSV_SCHEMAS: dict[str, str] = {
    "updated-database-results.csv": (
        "date,time,label,activity,distance,energy,pro,carb,fat,note,"
        "energy_acc,protein_acc,duration,pace,steps"
    ),
    "livsmedelsdatabas.csv": "livsmedel,calorie,protein,carb,fat",
    "recipie_databas.csv": _RECIPE_HEADER,
    "meal_databas.csv": _RECIPE_HEADER,
}

_STREAMLIT_CONFIG = """\
[server]
port = {port}
address = "{host}"
headless = true
runOnSave = false
enableCORS = false
enableXsrfProtection = false

[browser]
gatherUsageStats = false
serverAddress = "{host}"
serverPort = {port}

[theme]
primaryColor = "#FF6B6B"
backgroundColor = "#FFFFFF"
secondaryBackgroundColor = "#F0F2F6"
textColor = "#262730"
font = "sans serif"

[logger]
level = "info"
"""

_ENV_TEMPLATE = """\
# Supabase Configuration (optional, database mode only)
SUPABASE_URL=your_supabase_url_here
SUPABASE_KEY=your_supabase_anon_key_here
"""


def _create(path: Path, content: str) -> bool:
    """Write *content* to *path* unless it already exists."""
    try:
        with open(path, "x", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
    except FileExistsError:
        return False
    return True


def seed_data_files(data_dir: Path, schemas: dict[str, str] = CSV_SCHEMAS) -> list[Path]:
    """Create each missing CSV with its header row. Existing files are untouched.

    Returns the files that were created.
    """
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    created = []
    for filename, header in schemas.items():
        path = data_dir / filename
        if _create(path, header + "\n"):
            logger.info("Created CSV file: %s", path)
            created.append(path)
        else:
            logger.debug("%s already exists", path)
    return created


def write_streamlit_config(
    server_dir: Path, host: str = "localhost", port: int = 8501, force: bool = False
) -> bool:
    """Write ``.streamlit/config.toml``. Returns True if the file was written."""
    config_dir = Path(server_dir) / ".streamlit"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / "config.toml"
    content = _STREAMLIT_CONFIG.format(host=host, port=port)
    if force:
        config_file.write_text(content, encoding="utf-8")
        written = True
    else:
        written = _create(config_file, content)
    if written:
        logger.info("Wrote Streamlit config: %s", config_file)
    return written


def write_env_template(server_dir: Path) -> bool:
    """Write ``.env.template`` next to the app if it does not exist."""
    written = _create(Path(server_dir) / ".env.template", _ENV_TEMPLATE)
    if written:
        logger.info("Created .env.template in %s", server_dir)
    return written
