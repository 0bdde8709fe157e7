"""
                Order Watch

Order-state change detection and notification dispatch for the
restaurant admin console and the delivery partner app.

Author: Khalil_Bannouri
Version: 4.0.0
License: MIT
"""

__version__ = "4.0.0"
__author__ = "Khalil_Bannouri"
