from virgo.holdings.util.http.http import HTTP, GetRequestKwargs, RequestKwargs

__all__ = ["HTTP", "GetRequestKwargs", "RequestKwargs"]
