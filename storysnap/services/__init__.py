# Services package init
"""
StorySnap Backend — Services Layer
====================================

What:  Business logic between routes (HTTP) and the database.
How:   Services receive the request's AsyncSession and the acting identity as
       explicit arguments and return ORM objects or plain values. Routes
       convert those into response schemas.

Service Inventory:
    - StoryService:      story CRUD, feed query, atomic upvote toggle
    - ModerationService: admin check and approve/reject transitions
    - UserService:       sign-in sync and profile rename
    - feed / outline:    pure helpers (search + tag filter, table of contents)
    - LLMService (abstract) / GeminiService: translation proxy
    - ImageService:      base64 image validation and upload (Cloudinary or local)
"""
