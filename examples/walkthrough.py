"""
walkthrough.py

Replays the classic textbook cases for each tree variant and prints the
caption of every step.

Run:
    python examples/walkthrough.py
"""

from treetrace import Tree, TracePlayer, describe, explain


def play(title, trace):
    print(f"--- {title} ---")
    player = TracePlayer(trace)
    while player.has_next:
        print(f"  {describe(player.next(), trace.variant)}")
    print()


def main():
    avl = Tree("avl")
    avl.insert(10)
    avl.insert(20)
    play("AVL: a third ascending key forces a left rotation", avl.insert(30))

    red_black = Tree("red-black")
    red_black.insert(10)
    play("Red-Black: child of a black root", red_black.insert(5))

    red_black = Tree("red-black")
    for key in (10, 20, 30, 15):
        red_black.insert(key)
    trace = red_black.delete(30)
    play("Red-Black: deleting a black leaf", trace)
    print(explain(trace).to_text())


if __name__ == "__main__":
    main()
