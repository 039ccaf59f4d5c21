"""Latest Drop — promote the newest file in a folder to a drop folder.

Picks the most recently modified file in a source folder (optionally
filtered by extension and name prefix), copies or moves it to a
destination folder and reports the outcome by email.
"""

__version__ = "1.0.0"
__app_name__ = "Latest Drop"
