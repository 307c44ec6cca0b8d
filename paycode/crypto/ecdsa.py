from paycode.crypto import ecdsa_python as _ecdsa

ECPointAffine = _ecdsa.ECPointAffine
ECPointJacobian = _ecdsa.ECPointJacobian
EllipticCurve = _ecdsa.EllipticCurve
secp256k1 = _ecdsa.secp256k1
