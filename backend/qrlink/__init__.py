"""QR Link – dynamic QR codes backed by editable short links."""

__version__ = "0.1.0"
