

class OpCode:
    """
    The OpCodes of our language's VM
    """

    OP_CONSTANT = 0
    OP_RETURN = 1
    OP_NIL = 2
    OP_TRUE = 3
    OP_FALSE = 4
    OP_POP = 5
    OP_GET_NAME = 6
    OP_DEFINE_NAME = 7
    OP_SET_NAME = 8
    OP_JUMP = 9
    OP_JUMP_IF_FALSE = 10
    OP_LOOP = 11
    OP_CALL = 12
    OP_CLOSURE = 13
    OP_ARRAY = 14

    # Instructions followed by a one byte constant index
    ConstantOps = {
        OP_CONSTANT,
        OP_GET_NAME,
        OP_DEFINE_NAME,
        OP_SET_NAME,
        OP_CLOSURE,
    }

    # Instructions followed by a two byte jump offset
    JumpOps = {
        OP_JUMP: 1,
        OP_JUMP_IF_FALSE: 1,
        OP_LOOP: -1,
    }

    # Instructions followed by a one byte count
    ByteOps = {
        OP_CALL,
        OP_ARRAY,
    }
