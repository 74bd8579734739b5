"""
FedSync listing importer.

Imports a FedSync data export (category tree, event files, profile files)
into a headless content store with idempotent upserts.
"""

__version__ = "0.1.0"
