from tournament_draw.app import create_app
from tournament_draw.config import PORT

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=PORT)
