from ._simple_rnn import SimpleRNN

__all__ = [
    SimpleRNN.__name__,
]
