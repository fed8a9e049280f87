PROJECT_NAME = "SEOAudit-AI"
API_V1_STR = "/api/v1"
