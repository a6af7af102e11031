"""Match user-defined block rules against a stripped segment."""

from safety_net.config import CustomRule
from safety_net.rules_git import extract_git_subcommand_and_rest
from safety_net.shell import normalize_command_token


def _subcommand_of(head, tokens):
    if head == "git":
        return extract_git_subcommand_and_rest(tokens)[0]
    for tok in tokens[1:]:
        if not tok.startswith("-"):
            return tok.lower()
    return None


def match_custom_rules(tokens: list[str], rules: tuple[CustomRule, ...]) -> str | None:
    """Return ``[name] reason`` for the first rule that matches, or None.

    A rule matches when the head command equals ``rule.command``, the first
    positional argument equals ``rule.subcommand`` (if set), and some
    argument equals one of ``rule.block_args`` exactly.
    """
    if not tokens or not rules:
        return None
    head = normalize_command_token(tokens[0])
    args = set(tokens[1:])
    for rule in rules:
        if head != rule.command:
            continue
        if rule.subcommand and _subcommand_of(head, tokens) != rule.subcommand:
            continue
        if args.intersection(rule.block_args):
            return f"[{rule.name}] {rule.reason}"
    return None
