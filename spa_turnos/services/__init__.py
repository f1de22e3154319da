"""
Services Module Initialization

Booking rules (slots, availability, day aggregation) and the orchestration
services built on top of the remote repositories.
"""
