from fastapi import APIRouter
from endpoints.admin import router as admin_router
from endpoints.auth import router as auth_router
from endpoints.entry import router as entry_router
from endpoints.expense import router as expense_router
from endpoints.misc import router as misc_router
from endpoints.participant import router as participant_router
from endpoints.payee import router as payee_router
from endpoints.sse import router as sse_router

app_router = APIRouter()
app_router.include_router(misc_router, tags=["misc"])
app_router.include_router(sse_router, tags=["realtime"])
app_router.include_router(entry_router, prefix="/entry", tags=["entries"])
app_router.include_router(participant_router, prefix="/entry", tags=["participants"])
app_router.include_router(payee_router, prefix="/payee", tags=["payees"])
app_router.include_router(expense_router, prefix="/expense", tags=["expenses"])
app_router.include_router(auth_router, prefix="/auth", tags=["auth"])
app_router.include_router(admin_router, prefix="/admin", tags=["admin"])
