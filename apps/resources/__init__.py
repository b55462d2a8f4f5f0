"""Resources app package.

Holds the bookable lab resources (instruments, benches) that bookings
refer to.
"""
