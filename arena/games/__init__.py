"""
Game data modules.

Each game ships static data (roster, ability tables) consumed by the
engine. Only the champion roster ships today.
"""
