"""
The VIEW layer draws layout snapshots.
It reads positions from the controller and never writes them; pointer
gestures are forwarded to the controller's drag API.
"""
