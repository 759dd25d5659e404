"""cmdpal - command palette usage learning.

Records command invocations, search queries and resource accesses, and
turns that history into usage statistics, recent/frequent recommendations
and next-command predictions mined from recurring command sequences.
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
