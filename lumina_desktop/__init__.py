"""Lumina desktop launcher - run the Lumina Streamlit app in a native window."""

from lumina_desktop.config import Config
from lumina_desktop.models import (
    LaunchMode,
    LaunchPlan,
    ProcessState,
    ReadinessState,
    SupervisedProcess,
)
from lumina_desktop.session import LaunchSession

__version__ = "0.1.0"
__all__ = [
    "Config",
    "LaunchMode",
    "LaunchPlan",
    "LaunchSession",
    "ProcessState",
    "ReadinessState",
    "SupervisedProcess",
]
