"""
The entry point for running on top of python.

"""
from gust.client import entry_point

if __name__ == '__main__':
    entry_point()
