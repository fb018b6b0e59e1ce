"""
Optional inference backends for sight_kit.

Backends are kept in a separate module so the post-processing core stays
lightweight and can be used without installing inference runtimes.
"""

from __future__ import annotations

__all__ = []
