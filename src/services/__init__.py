"""Business logic services used by handlers.

Services are imported lazily by handlers so the health route never builds a
database pool or loads qrcode/Pillow on a cold start.
"""

# Do NOT import services here - use lazy loading in handlers instead
