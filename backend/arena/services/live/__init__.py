"""Live coordination core: ledger, sessions, mini-game engines and broadcast.

Transport code (HTTP routes, Socket.IO handlers) calls into the
``LiveCoordinator``; nothing in this package knows about request payloads.
"""
