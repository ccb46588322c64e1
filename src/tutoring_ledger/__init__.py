"""Tutoring lesson ledger package.

Feature modules (contracts, reservations, attendance, substitution, corrections,
statistics) follow the same split: frozen dataclass models, repository
Protocols with MySQL implementations, and plain service classes. Flask
controllers are a thin JSON layer on top.
"""
