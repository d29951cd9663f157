"""
Allows `python -m dhamma_seeder` as an alias for the dhamma-seed command.
"""

from .cli import app

if __name__ == "__main__":
    app(prog_name="dhamma-seed")
