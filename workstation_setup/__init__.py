"""
Workstation Setup
-----------------
Idempotent, interactive provisioning of a personal Arch Linux workstation.
Each step probes the current state, asks the operator where appropriate,
backs up anything it will overwrite and applies only what is missing.
"""

APP_NAME = "Workstation Setup"
VERSION = "1.0.0"

__version__ = VERSION
