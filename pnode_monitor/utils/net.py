def host_of(address: str) -> str:
    """
    Extrae la IP/host de una dirección "host:port".
    Soporta IPv6 entre corchetes ("[::1]:9001") y direcciones sin puerto.
    """
    address = (address or "").strip()
    if address.startswith("["):
        end = address.find("]")
        return address[1:end] if end != -1 else address[1:]
    if address.count(":") > 1:
        # IPv6 sin corchetes: no hay puerto que separar
        return address
    return address.split(":", 1)[0]
