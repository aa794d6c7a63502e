"""Core configuration, types and errors for the arena.

Import from the submodules directly (``arena_rating.core.config``,
``arena_rating.core.errors``, ``arena_rating.core.types``); the ranking
package depends on ``errors`` while ``config`` depends on ranking constants.
"""
