import uvicorn
import logging
import os
import sys
from core.settings import settings
from routes.main import app

# Set up logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

def ssl_options():
  if not settings.SSL_CERTFILE and not settings.SSL_KEYFILE:
    return {}

  for path in (settings.SSL_CERTFILE, settings.SSL_KEYFILE):
    if not path or not os.path.exists(path):
      logger.error(f"FATAL ERROR: SSL certificate file not found: {path}")
      logger.error("Set both SSL_CERTFILE and SSL_KEYFILE, e.g. to files made with `mkcert localhost 127.0.0.1 <your-ip>`.")
      sys.exit(1)

  return {"ssl_certfile": settings.SSL_CERTFILE, "ssl_keyfile": settings.SSL_KEYFILE}

if __name__ == "__main__":
  host = settings.HOST
  port = settings.PORT
  options = ssl_options()
  scheme = "https" if options else "http"
  logger.info(f"Starting server at {scheme}://{host}:{port}")
  uvicorn.run(app, host=host, port=port, **options)
