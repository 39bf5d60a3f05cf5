"""
Spectrogram Generator

Turns an audio recording into a publication-style spectrogram figure:
windowed STFT, decibel conversion, noise gating and enhancement, and
colormapped rendering with axes, panel label and annotations.
"""

__version__ = "1.0.0"
__author__ = "Spectrogram Generator Team"
