__version__ = "0.3.0"

from gust.chunk import Chunk
from gust.opcodes import OpCode
from gust.compiler import Compiler
from gust.parser import Parser, ParserStatus
from gust.vm import VM
