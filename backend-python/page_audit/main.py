import os, logging
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from .auditor import run_audit
from .utils import is_absolute_http_url

API_TOKEN = os.getenv('AUTH_TOKEN','')
CORS_ORIGIN = os.getenv('CORS_ORIGIN','*')

logging.basicConfig(
    level=os.getenv('LOG_LEVEL','INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Page Audit")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ORIGIN] if CORS_ORIGIN!='*' else ['*'],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

async def auth(req: Request):
    if not API_TOKEN:
        return
    auth = req.headers.get('authorization','')
    if not auth.startswith('Bearer '):
        raise HTTPException(401,'no token')
    token = auth.split(' ',1)[1]
    if token != API_TOKEN:
        raise HTTPException(403,'bad token')

@app.get('/healthz')
async def healthz():
    return {"ok": True}

@app.post('/audit')
async def audit(payload: dict, _=Depends(auth)):
    url = payload.get('url')
    if not url or not isinstance(url, str):
        raise HTTPException(400,'Missing or invalid `url` in request body')
    if not is_absolute_http_url(url):
        raise HTTPException(400,'Invalid URL')
    try:
        report = await run_audit(url)
    except Exception as e:
        logger.exception("audit crashed for %s", url)
        raise HTTPException(500, str(e))
    return report.to_dict()
