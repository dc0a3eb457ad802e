"""
salonslots - Appointment slot scheduling for a single-chair salon.
"""

__version__ = "0.1.0"
