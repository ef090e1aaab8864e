"""
Use cases for the KushL marketplace.

Entity modules (users, projects, tasks, payments, SOPs, notifications, user
lists) are thin CRUD helpers over ``JsonCollection``. ``auth_service`` and
``gamification_service`` hold the per-user session and counters.

Routers call these modules directly; there is no further service layer.
"""
