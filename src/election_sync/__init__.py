"""Election data sync: pull election results into a PocketBase store."""

__version__ = "0.1.0"
