# Dice resolution and the resolve / deep_resolve pipeline.

import dataclasses
import heapq
import math
import random
import typing

from dice_errors import EvalTypeError
from dice_values import (
    Budget,
    LazyArray,
    LazyDice,
    Place,
    RRVal,
    RVal,
    add,
    order_key,
    sort_values,
    unresolve,
    values_equal,
)


# Whatever owns an evaluation: its RNG stream, variables, and budget.
class Scope(typing.Protocol):
    rng: random.Random
    budget: Budget

    def lookup(self, place: Place) -> RRVal:
        ...


def is_exploding(face: RRVal, explode: list) -> bool:
    return any(values_equal(face, trigger) for trigger in explode)


# Roll one die. Faces in the explode set trigger another roll which is
# added to this die's total, until a non-exploding face comes up.
def single_roll(dice: LazyDice, rng: random.Random, budget: Budget) -> RRVal:
    sides = dice.sides
    total = None
    while True:
        face = sides[rng.randrange(len(sides))]
        total = face if total is None else add(total, face, budget)
        if not dice.explode or not is_exploding(face, dice.explode):
            return total
        budget.tick()


def _sum(values: typing.Iterable, budget: Budget) -> RRVal:
    total = None
    for value in values:
        total = value if total is None else add(total, value, budget)
    return 0 if total is None else total


def resolve_dice(dice: LazyDice, rng: random.Random, budget: Budget) -> RRVal:
    if not dice.sides or dice.highest_idx < dice.lowest_idx:
        return 0

    if dice.is_full_range():
        total = None
        for _ in range(dice.num):
            sample = single_roll(dice, rng, budget)
            total = sample if total is None else add(total, sample, budget)
            budget.tick()
        return 0 if total is None else total

    rolls = []
    for _ in range(dice.num):
        rolls.append(single_roll(dice, rng, budget))
        budget.tick()
    rolls = sort_values(rolls)
    return _sum(rolls[dice.lowest_idx : dice.highest_idx + 1], budget)


# Narrow the kept range of a dice term to its top `k` rolls.
def keep_highest_dice(dice: LazyDice, k: int) -> LazyDice:
    return dataclasses.replace(
        dice, lowest_idx=max(dice.lowest_idx, dice.highest_idx + 1 - k)
    )


# Narrow the kept range of a dice term to its bottom `k` rolls.
def keep_lowest_dice(dice: LazyDice, k: int) -> LazyDice:
    return dataclasses.replace(
        dice, highest_idx=min(dice.highest_idx, dice.lowest_idx + k - 1)
    )


# Keep the `k` highest (or lowest) elements of an array, preserving their
# original order. NaNs are dropped before selection. Which of several equal
# elements survive at the boundary is unspecified; exactly min(k, n) do.
def keep_array(
    items: list, k: int, highest: bool, scope: Scope, operation: str
) -> list:
    candidates = []
    for i, item in enumerate(items):
        value = resolve(item, scope)
        if isinstance(value, LazyArray):
            raise EvalTypeError(f"cannot perform {operation} operation on nested array")
        if isinstance(value, float) and math.isnan(value):
            continue
        candidates.append((i, value))

    select = heapq.nlargest if highest else heapq.nsmallest
    chosen = select(k, candidates, key=lambda pair: order_key(pair[1]))
    kept = sorted(i for i, _ in chosen)
    by_index = dict(candidates)
    return [by_index[i] for i in kept]


def resolve(value, scope: Scope) -> RVal:
    if isinstance(value, LazyDice):
        return unresolve(resolve_dice(value, scope.rng, scope.budget))
    if isinstance(value, Place):
        return unresolve(scope.lookup(value))
    return value


def deep_resolve(value, scope: Scope) -> RRVal:
    if isinstance(value, LazyDice):
        return resolve_dice(value, scope.rng, scope.budget)
    if isinstance(value, Place):
        return scope.lookup(value)
    if isinstance(value, LazyArray):
        return [deep_resolve(item, scope) for item in value.items]
    return value
