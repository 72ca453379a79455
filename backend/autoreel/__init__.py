"""AutoReel - highlight extraction and timeline compositing."""

__version__ = "1.0.0"
