"""
Pulseboard - Real-Time Admin Dashboard Backend

REST + WebSocket service: authenticated users watch live metrics, manage
configuration, maintain a small AI model registry and export data.
"""

__version__ = "0.1.0"
