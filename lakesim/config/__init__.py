"""Configuration package for the lake simulation.

Constants live in topic modules (``simulation``, ``behavior``, ``schooling``,
``food_chain``, ``capture``, ``species``). ``simulation_config`` aggregates
them into overridable dataclasses and ``tackle`` holds the validated session
tackle models.
"""
