from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from waste_portal.config import settings
from waste_portal.logging_setup import setup_logging
from waste_portal.routers import auth, finance, fleet, management, stock
from waste_portal.security.csrf import install_csrf_cookie_middleware
from waste_portal.security.headers import install_security_headers
from waste_portal.security.sessions import install_auth_session_middleware

setup_logging(settings)

app = FastAPI(title='Waste Management Portal')

install_security_headers(app)
install_csrf_cookie_middleware(app)
install_auth_session_middleware(app)

app.include_router(auth.router)
app.include_router(stock.router)
app.include_router(finance.router)
app.include_router(fleet.router)
app.include_router(management.router)


@app.get('/healthz')
def healthz() -> dict:
    return {'status': 'ok'}


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'
