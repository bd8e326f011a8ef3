# Services package init
"""
Fellowship Backend — Services Package
======================================

What:  Business logic, independent of HTTP.

    relationships.py  shared engine primitives (pair locks, unit of work)
    friending.py      FriendingEngine
    following.py      FollowingEngine
    users.py          UserService      (Authentication)
    sessioning.py     SessionIssuer    (Sessioning)
    posts.py          PostService      (Posting)
"""
