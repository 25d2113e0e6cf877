"""docview - synchronized scan/transcript viewer core.

Hit-tests pointer positions on a rendered page against OCR line boxes,
keeps the page and transcript highlights in sync, and ranks community
transcription suggestions.
"""

__version__ = "0.1.0"
