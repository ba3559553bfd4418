from fastapi.security import HTTPBearer

# HTTP Bearer authentication scheme for the back office
bearer_admin = HTTPBearer(scheme_name="Admin HTTPBearer")
