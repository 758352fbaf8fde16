"""armkit: Package manager for AI-assistant rulesets and promptsets."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
