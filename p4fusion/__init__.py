"""Filter, group and commit Perforce changelist history into a Git repository."""

__version__ = "1.13.0"