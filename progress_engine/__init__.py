"""
Progress Engine
XP, levels, weekly leagues and local-first progress sync for a math practice app
"""

__version__ = "1.0.0"
__author__ = "Progress Engine Team"
__description__ = "Progression engine with XP curve, rewards, leagues and progress merge, served over a REST API"

# Package metadata
__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
