# cli_driver.py
# This file is intended to be run to play or test the 2048 game on the CLI

import logging
import random
from typing import Optional

from core import GameProgressState, Model, Side, Tile
from settings import load_settings

logger = logging.getLogger(__name__)

KEY_TO_SIDE = {'W': Side.NORTH, 'A': Side.WEST, 'S': Side.SOUTH, 'D': Side.EAST}


def add_random_tile(model: Model, rng: Optional[random.Random] = None) -> bool:
    """
    Adds a new tile (90% chance of 2, 10% chance of 4) to a random empty cell.
    Args:
        model (Model): The game to add the tile to.
        rng (random.Random): Source of randomness, the module's by default.
    Returns:
        bool: True if a tile was added, False if the board is full.
    """
    rng = rng or random
    empty_cells = model.empty_cells()
    if not empty_cells:
        return False
    col, row = rng.choice(empty_cells)
    model.add_tile(Tile(4 if rng.random() < 0.1 else 2), col, row)
    return True


def main():
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())

    # 1. Initialize game with two tiles
    model = Model(settings.board_size, settings.max_piece)
    add_random_tile(model)
    add_random_tile(model)
    display_board_state(model)

    # 2. Game Loop
    while not model.game_over():
        move_input = input("Enter move (W/A/S/D for North/West/South/East, N for new game, Q to quit): ").upper()

        if move_input == 'Q':
            print("Quitting game.")
            break

        if move_input == 'N':
            model.clear()
            add_random_tile(model)
            add_random_tile(model)
            display_board_state(model)
            continue

        chosen_side = KEY_TO_SIDE.get(move_input)
        if not chosen_side:
            print("Invalid input. Use W, A, S, D.")
            continue

        # 3. Tilt, and add a new tile only if the tilt changed the board
        if model.tilt(chosen_side):
            add_random_tile(model)
        else:
            print("Move did not change the board. Try a different direction.")

        display_board_state(model)

    # 4. Game Ended
    progress = model.progress()
    logger.info("Game ended with state %s and score %d", progress.name, model.score())
    print("\n--- Final Board State ---")
    display_board_state(model)
    if progress == GameProgressState.GAME_WON:
        print(f"Congratulations! You reached the {model.max_piece} tile!")
    elif progress == GameProgressState.GAME_OVER:
        print("No more moves possible. Better luck next time!")


def display_board_state(model: Model):
    """Prints the board, score, and game status to the console."""
    progress = model.progress()
    print(f"\nScore: {model.score()} (max: {model.max_score()})")
    status_message = {
        GameProgressState.IN_PROGRESS: f"Status: {progress.name}",
        GameProgressState.GAME_WON: "YOU WON!",
        GameProgressState.GAME_OVER: "GAME OVER!"
    }
    print(status_message.get(progress, f"Status: {progress.name} (Unknown)"))

    for row in model.values():
        print("\t".join(str(value) if value else "." for value in row))
    print("-" * (model.size() * 6))


if __name__ == "__main__":
    main()
