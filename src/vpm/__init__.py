"""VPM - control plane for a Daydream real-time generative-video stream."""

__version__ = "0.1.0"
