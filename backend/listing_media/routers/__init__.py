"""HTTP routers. Business logic lives in services.media_service."""
