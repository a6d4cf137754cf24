"""Clinic Attendance package.

Feature modules (qrcodes, geofence, schedules, attendance, statistics) each
own a model, a repository interface, a MySQL repository and a service, with a
thin Flask controller on top.
"""
