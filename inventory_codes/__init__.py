"""Product code, barcode and QR code management for the store chain's catalog.

``inventory_codes.main:app`` is the ASGI entry point; the code generation and
synchronisation logic lives in ``core`` and ``services`` and can be used
without the web layer.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
