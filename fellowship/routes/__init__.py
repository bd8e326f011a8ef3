# Routes package init
"""
Fellowship Backend — API Routes Package
=========================================

Route Inventory:
    - users.py:    /session, /users, /login, /logout
    - posts.py:    /posts
    - friends.py:  /friends, /friend/...
    - follows.py:  /follow, /followers, /following
    - health.py:   /health

Routes stay thin: resolve the caller and any usernames, call one concept,
shape the response. Failures are rendered by the global handler in main.py.
"""
