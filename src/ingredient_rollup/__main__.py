from ingredient_rollup.cli import app

if __name__ == "__main__":
    app()
