"""
Genealogy chart of models laid out along a continuous time axis.
"""
