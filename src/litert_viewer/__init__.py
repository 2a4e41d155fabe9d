"""
LiteRT Viewer

Single-image object detection demo on the LiteRT (TensorFlow Lite) runtime.
Draws detected boxes on the model input and the original image, either to
disk or in a small local web viewer.
"""

__version__ = "0.2.0"
__author__ = "Pluraf"
__license__ = "BSD-3-Clause"
