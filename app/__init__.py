"""
CareBoard - Medical Records and Treatment Board Service

Turns an uploaded medical report image into a patient-readable treatment
plan and a Kanban board of treatment steps.

IMPORTANT: Generated plans are informational. They never replace a doctor.
"""

__version__ = "1.0.0"
__author__ = "CareBoard Team"
