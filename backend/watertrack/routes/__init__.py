"""
WaterTrack Backend: API Routes Package
======================================

Route Inventory:
    - auth.py:        /auth/register, /auth/verify, /auth/login, /auth/logout,
                      /auth/recover-password
    - user.py:        /user/current, /user, /user/avatars, /user/validate,
                      GET /avatars/{filename}
    - water.py:       POST /water, PUT|DELETE /water/{intakeId}
    - today.py:       GET /today
    - month.py:       GET /month
    - water_rate.py:  PATCH /waterrate
    - health.py:      GET /health

Routes are thin: they read the request, call one service, and shape the
response. Errors propagate to the handlers registered in main.py.
"""
