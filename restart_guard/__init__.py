"""
Restart Guard - Kubernetes Deployment Restart Monitor

Watches a deployment's pod restart count and scales it to zero once
the count crosses a threshold, keeping its own log file rotated.
"""

__version__ = "1.0.0"
