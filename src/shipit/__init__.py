"""shipit - AI-powered commit splitter."""

__version__ = "0.1.0"
