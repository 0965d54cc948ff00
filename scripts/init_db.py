import logging
import sys

from jobpulse.db.session import check_connection, coalesce_url, make_engine
from jobpulse.db.models import Base

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def main():
    engine = make_engine()
    if not check_connection(engine):
        logger.error("Cannot connect to %s", coalesce_url())
        sys.exit(1)
    logger.info("Initializing cache schema at %s ...", coalesce_url())
    Base.metadata.create_all(bind=engine)
    logger.info("Cache schema initialized successfully.")

if __name__ == "__main__":
    main()
