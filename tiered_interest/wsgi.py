#setup: pip install -e .
#setup: flask --app tiered_interest.wsgi run --port 5000 --debug

import logging

from tiered_interest.app import create_app
from tiered_interest.config import get_settings

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    app.run(port=5000, debug=True)
