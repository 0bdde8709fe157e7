"""
                        Services Module

Collaborators of the watch engine with the hybrid architecture pattern.
Each service has Mock (development) and Real (production) implementations.

Services:
    - orders: Order API snapshot fetching (httpx)
    - notifications: device notification dispatch (Expo push)
    - storage: key/value persistence (JSON files / Redis)
    - sessions: per-session provider registry (import from
      order_watch.services.sessions; it depends on the engine)
"""
