# sentinelvote/__main__.py

import os

from sentinelvote import create_app

if __name__ == "__main__":
    app = create_app()
    app.run(host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8080")))
