"""Core logic for price history, indicators, and recommendations.

This package contains pure business logic with no I/O dependencies
(no files, HTTP, or sockets). Collaborators such as the market data
source and the history store are injected through the protocols in
core.strategy.protocol.
"""
