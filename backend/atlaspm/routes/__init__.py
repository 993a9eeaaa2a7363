# Routes package init
"""
AtlasPM Backend — API Routes Package
=====================================

What:  HTTP route handlers that accept requests and return responses.
How:   One module per resource, all mounted under /v1.

Route Inventory:
    - projects.py:    /v1/project,   /v1/project/{project_id}
    - clients.py:     /v1/client,    /v1/client/{id}
    - proposals.py:   /v1/proposal,  /v1/proposal/{proposal_id}
    - roles.py:       /v1/role,      /v1/role/{id}
    - activities.py:  /v1/activity,  /v1/activity/{id}
    - users.py:       /v1/user,      /v1/user/{id}
    - timesheets.py:  /v1/timesheet, /v1/timesheet/{ulid}
    - health.py:      /health, /v1/healthcheck

Design Principle:
    Routes are THIN. They extract path, query and body, call one service
    method, and wrap the result in its envelope. Errors raised by services
    are turned into responses by the handlers registered in main.py.
"""
