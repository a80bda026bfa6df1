# Copyright (C) 2019 The Chainpoint Client developers
#
# This file is part of the Chainpoint Client.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of the Chainpoint Client, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.

import binascii
import hashlib
import re

from bitcoin.core.serialize import Hash

HEX_RE = re.compile(r'[0-9a-f]{2,}', re.IGNORECASE)

def is_hex(value):
    """True if value is an even-length hexadecimal string"""
    return isinstance(value, str) and bool(HEX_RE.fullmatch(value)) and not len(value) % 2

class MsgValueError(ValueError):
    """Raised when an operation can't be applied to the specified message.

    For example because the message, or the result of the operation, exceeds
    the maximum length we're willing to work with.
    """

class OpArgValueError(ValueError):
    """Raised when an operation argument has an invalid value"""

class Op(tuple):
    """Proof operations

    Each branch of a proof is a sequence of operations; applied in order to
    the hash being proven they produce the value that the branch's anchors
    commit to.
    """
    SUBCLS_BY_TAG = {}
    SUBCLS_BY_NAME = {}
    __slots__ = []

    MAX_RESULT_LENGTH = 4096
    """Maximum length of an Op result

    Chainpoint only ever needs room for a hash plus a sibling, or a Bitcoin
    transaction small enough to carry an OP_RETURN commitment; 4KiB is plenty
    for both.
    """

    MAX_MSG_LENGTH = 4096
    """Maximum length of the message an Op can be applied too"""

    def __eq__(self, other):
        if isinstance(other, Op):
            return self.TAG == other.TAG and tuple(self) == tuple(other)
        else:
            return NotImplemented

    def __ne__(self, other):
        if isinstance(other, Op):
            return self.TAG != other.TAG or tuple(self) != tuple(other)
        else:
            return NotImplemented

    def __hash__(self):
        return self.TAG[0] ^ tuple.__hash__(self)

    def _do_op_call(self, msg):
        raise NotImplementedError

    def __call__(self, msg):
        """Apply the operation to a message

        Raises MsgValueError if the message value is invalid, such as it being
        too long, or it causing the result to be too long.
        """
        if not isinstance(msg, bytes):
            raise TypeError("Expected message to be bytes; got %r" % msg.__class__)

        elif len(msg) > self.MAX_MSG_LENGTH:
            raise MsgValueError("Message too long; %d > %d" % (len(msg), self.MAX_MSG_LENGTH))

        r = self._do_op_call(msg)

        # An empty result would let two different paths commit to nothing
        assert len(r)

        if len(r) > self.MAX_RESULT_LENGTH:
            raise MsgValueError("Result too long; %d > %d" % (len(r), self.MAX_RESULT_LENGTH))

        else:
            return r

    def __repr__(self):
        return '%s()' % self.__class__.__name__

    def __str__(self):
        return '%s' % self.TAG_NAME

    @classmethod
    def _register_op(cls, subcls):
        cls.SUBCLS_BY_TAG[subcls.TAG] = subcls
        if cls != Op:
            cls.__base__._register_op(subcls)
        else:
            cls.SUBCLS_BY_NAME[subcls.TAG_NAME] = subcls
        return subcls

    def to_json(self):
        raise NotImplementedError

    @classmethod
    def from_json(cls, raw_op):
        """Create an op from its JSON-LD form

        Raises ValueError if the op is unknown or malformed.
        """
        if not isinstance(raw_op, dict) or len(raw_op) != 1:
            raise ValueError("Expected an op object with a single key; got %r" % (raw_op,))

        (key, value), = raw_op.items()
        if key == 'op':
            try:
                return cls.SUBCLS_BY_NAME[value]()
            except (KeyError, TypeError):
                raise ValueError("Unknown hash op %r" % (value,))

        elif key in BinaryOp.SUBCLS_BY_NAME:
            if not isinstance(value, str):
                raise ValueError("%s op argument must be a string; got %r" % (key, value))
            return BinaryOp.SUBCLS_BY_NAME[key](value)

        else:
            raise ValueError("Unknown op %r" % key)

class UnaryOp(Op):
    """Operations that act on a single message"""
    SUBCLS_BY_TAG = {}

    def __new__(cls):
        return tuple.__new__(cls)

    def to_json(self):
        return {'op': self.TAG_NAME}

class BinaryOp(Op):
    """Operations that combine a message with a single argument

    The argument is kept as the text found in the proof. Text that is valid
    hex is applied as the bytes it encodes, anything else as its UTF-8
    encoding; node and core identifiers are committed to this way.
    """
    SUBCLS_BY_TAG = {}
    SUBCLS_BY_NAME = {}

    def __new__(cls, arg):
        if not isinstance(arg, str):
            raise TypeError("arg must be str")
        elif not len(arg):
            raise OpArgValueError("%s arg can't be empty" % cls.__name__)
        elif len(arg) > cls.MAX_RESULT_LENGTH * 2:
            raise OpArgValueError("%s arg too long: %d > %d" % (cls.__name__, len(arg), cls.MAX_RESULT_LENGTH * 2))
        return tuple.__new__(cls, (arg,))

    @classmethod
    def _register_op(cls, subcls):
        cls.SUBCLS_BY_NAME[subcls.TAG_NAME] = subcls
        cls.SUBCLS_BY_TAG[subcls.TAG] = subcls
        Op.SUBCLS_BY_TAG[subcls.TAG] = subcls
        return subcls

    @property
    def data(self):
        """The argument as the bytes the op operates with"""
        if is_hex(self[0]):
            return binascii.unhexlify(self[0])
        else:
            return self[0].encode('utf8')

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self[0])

    def __str__(self):
        return '%s %s' % (self.TAG_NAME, self[0])

    def to_json(self):
        return {self.TAG_NAME: self[0]}


@BinaryOp._register_op
class OpAppend(BinaryOp):
    """Append a suffix to a message"""
    TAG = b'\xf0'
    TAG_NAME = 'r'

    def _do_op_call(self, msg):
        return msg + self.data

@BinaryOp._register_op
class OpPrepend(BinaryOp):
    """Prepend a prefix to a message"""
    TAG = b'\xf1'
    TAG_NAME = 'l'

    def _do_op_call(self, msg):
        return self.data + msg


class CryptOp(UnaryOp):
    """Cryptographic transformations

    For any length message the size of the result is fixed.
    """
    __slots__ = []
    SUBCLS_BY_TAG = {}

    DIGEST_LENGTH = None

    def _do_op_call(self, msg):
        r = hashlib.new(self.HASHLIB_NAME, bytes(msg)).digest()
        assert len(r) == self.DIGEST_LENGTH
        return r

    def hash_fd(self, fd):
        hasher = hashlib.new(self.HASHLIB_NAME)
        while True:
            chunk = fd.read(2**20) # 1MB chunks
            if chunk:
                hasher.update(chunk)
            else:
                break

        return hasher.digest()

@CryptOp._register_op
class OpSHA224(CryptOp):
    TAG = b'\x0b'
    TAG_NAME = 'sha-224'
    HASHLIB_NAME = 'sha224'
    DIGEST_LENGTH = 28

@CryptOp._register_op
class OpSHA256(CryptOp):
    TAG = b'\x08'
    TAG_NAME = 'sha-256'
    HASHLIB_NAME = 'sha256'
    DIGEST_LENGTH = 32

@CryptOp._register_op
class OpSHA384(CryptOp):
    TAG = b'\x09'
    TAG_NAME = 'sha-384'
    HASHLIB_NAME = 'sha384'
    DIGEST_LENGTH = 48

@CryptOp._register_op
class OpSHA512(CryptOp):
    TAG = b'\x0a'
    TAG_NAME = 'sha-512'
    HASHLIB_NAME = 'sha512'
    DIGEST_LENGTH = 64

@CryptOp._register_op
class OpSHA3_224(CryptOp):
    TAG = b'\x20'
    TAG_NAME = 'sha3-224'
    HASHLIB_NAME = 'sha3_224'
    DIGEST_LENGTH = 28

@CryptOp._register_op
class OpSHA3_256(CryptOp):
    TAG = b'\x21'
    TAG_NAME = 'sha3-256'
    HASHLIB_NAME = 'sha3_256'
    DIGEST_LENGTH = 32

@CryptOp._register_op
class OpSHA3_384(CryptOp):
    TAG = b'\x22'
    TAG_NAME = 'sha3-384'
    HASHLIB_NAME = 'sha3_384'
    DIGEST_LENGTH = 48

@CryptOp._register_op
class OpSHA3_512(CryptOp):
    TAG = b'\x23'
    TAG_NAME = 'sha3-512'
    HASHLIB_NAME = 'sha3_512'
    DIGEST_LENGTH = 64

@CryptOp._register_op
class OpSHA256x2(CryptOp):
    """Double SHA-256, as Bitcoin uses for txids and merkle trees"""
    TAG = b'\x0c'
    TAG_NAME = 'sha-256-x2'
    DIGEST_LENGTH = 32

    def _do_op_call(self, msg):
        r = Hash(bytes(msg))
        assert len(r) == self.DIGEST_LENGTH
        return r
