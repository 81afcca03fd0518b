"""Command-line tokenization."""

from shellpipe.parsing.tokenizer import CommandTokenizer, tokenize

__all__ = ["CommandTokenizer", "tokenize"]
