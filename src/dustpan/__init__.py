"""dustpan - disk usage browser and system status dashboard for the terminal."""

__version__ = "0.1.0"
