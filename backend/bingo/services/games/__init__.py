"""Game domain services: cards, win patterns, lifecycle and roster.

This package contains the game rules that HTTP routes and socket handlers
import, keeping transport concerns separated from core game mechanics.
`cards` and `patterns` are pure; `lifecycle` and `roster` go through `store`.
"""
