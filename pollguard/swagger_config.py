def swagger_template(app=None):
    title = "PollGuard API"
    version = "1.0.0"

    if app:
        title = app.config.get("SWAGGER_TITLE", title)
        version = app.config.get("SWAGGER_VERSION", version)

    return {
        "swagger": "2.0",
        "info": {"title": title, "version": version},
        "securityDefinitions": {
            "BearerAuth": {
                "type": "apiKey",
                "name": "Authorization",
                "in": "header",
                "description": "Admin JWT Authorization header: Bearer <token>"
            }
        },
        "definitions": {
            "ErrorResponse": {
                "type": "object",
                "properties": {
                    "success": {"type": "boolean", "example": False},
                    "error": {
                        "type": "object",
                        "properties": {
                            "code": {"type": "string", "example": "ALREADY_VOTED"},
                            "message": {"type": "string", "example": "Already voted"},
                            "details": {"type": "object"}
                        }
                    },
                    "request_id": {"type": "string"}
                }
            },
            "ClientSignals": {
                "type": "object",
                "properties": {
                    "screenWidth": {"type": "integer"},
                    "screenHeight": {"type": "integer"},
                    "colorDepth": {"type": "integer"},
                    "language": {"type": "string"},
                    "timezone": {"type": "string"},
                    "hardwareConcurrency": {"type": "integer"},
                    "deviceMemory": {"type": "number"},
                    "touchSupport": {"type": "boolean"}
                }
            }
        }
    }
