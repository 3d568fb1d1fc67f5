"""FitSync backend: user accounts on a hosted auth service + custom users table."""

__version__ = "1.0.0"
