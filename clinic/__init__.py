"""
Clinic Backend Application Package

Appointment booking, reminder delivery and admin API for a single-practitioner
therapy clinic.
"""
