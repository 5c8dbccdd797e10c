from .cmd_link import link
from .cmd_run import run

__all__ = ["link", "run"]
