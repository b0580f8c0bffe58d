"""Sports club scheduling package.

Organized by feature modules (classes, absences, users) with a thin Flask
controller layer over service/repository layers.
"""
