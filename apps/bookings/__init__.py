"""Bookings app package.

This app encapsulates the booking lifecycle: requests, approval,
rejection, cancellation and automatic promotion from the waitlist.
Every status change is serialized per resource so that no two active
bookings on a resource ever overlap.
"""
