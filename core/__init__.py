"""core/ -- Configuration, error taxonomy and database schema for Conduit.

core/ is the kernel: it imports nothing from api/, auth/ or social/.
"""
