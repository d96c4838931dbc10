# Routes package init
"""
StorySnap Backend — API Routes Package
========================================

Route Inventory:
    - stories.py:   GET   /api/stories                 feed / queue / author list
                    POST  /api/stories                 submit (always pending)
                    GET   /api/stories/{id}            detail
                    PATCH /api/stories/{id}            admin content edit
                    GET   /api/stories/{id}/outline    TOC + reading time
                    POST  /api/stories/{id}/upvote     atomic toggle
    - admin.py:     PATCH /api/admin/stories/{id}      approve / reject
                    POST  /api/admin/check             role lookup
    - users.py:     POST  /api/auth/sync               first sign-in
                    PUT   /api/user/update             rename
    - translate.py: POST  /api/translate               Gemini pass-through
    - upload.py:    POST  /api/upload                  base64 image upload
                    GET   /api/files/{path}            local backend files
    - health.py:    GET   /health

Routes stay thin: parse the request, call a service, shape the response.
Errors are raised as storysnap.exceptions types and turned into the JSON
error envelope by the handlers in storysnap.main.
"""
