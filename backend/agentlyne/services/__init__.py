"""
Booking, mail and vendor services
"""
