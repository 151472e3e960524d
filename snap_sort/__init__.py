"""SnapSort — keeps the screenshot folder tidy.

Watches the platform's screenshot folder for new captures and moves
genuine screenshots into date-named sub-folders (one per month or one
per day) once they have finished writing.
"""

__version__ = "1.0.0"
__app_name__ = "SnapSort"
