"""
bandstat - Source Modules

This package contains the modules for band energy and dynamics analysis:
- bands: Frequency band table
- kernel_params: Kernel constants and K-weighting coefficients
- kernel: Window, K-weighting, frame/band power accumulation, dynamics
- audio_io: Audio loading, mono conversion and resampling
- analysis: Stats and timeline sessions over decoded audio
- report: Fixed-width text tables
- export: JSON and chart generation
"""

__version__ = "1.0.0"
