"""
Pose matching utilities.

This package defines the landmark types, a model-agnostic PoseProvider interface
with a MediaPipe adapter, and the pure geometry used to compare a live skeleton
against a template: letterbox projection, scoring and guidance.
"""
