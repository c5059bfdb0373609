"""Build, run and publish dev container images from a CI action."""
