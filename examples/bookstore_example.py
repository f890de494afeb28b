#!/usr/bin/env python3
"""
Bookstore example for resttree.

This example demonstrates:
- Listing, fetching, creating, updating and deleting resources
- Path parameters
- Hooks short-circuiting with a named status
- A native in-memory resource
- Debug logging of the request pipeline

Run it directly to replay a few requests, or serve it with uvicorn:

    uvicorn examples.bookstore_example:asgi_app
"""

import logging

from resttree import HTTPMethod, Options, Request, ResourceApplication, native
from resttree.adapters import ASGIAdapter

books = [
    {"title": "Dune", "author": "Frank Herbert"},
    {"title": "Solaris", "author": "Stanislaw Lem"},
]


def require_token(request, proceed):
    """Write operations need a token."""
    if request.method in (HTTPMethod.GET, HTTPMethod.HEAD):
        proceed()
    elif request.get_header("authorization") == "Bearer secret":
        proceed()
    else:
        proceed.unauthorized()


def count_books(request, callback):
    callback(None, len(books))


def list_books(request, skip, limit, callback):
    callback(None, books[skip:skip + limit])


def add_book(request, respond):
    if not isinstance(request.body, dict) or "title" not in request.body:
        respond.bad_request()
        return
    books.append(request.body)
    respond.status(201, {"id": len(books) - 1})


def find_book(request):
    try:
        index = int(request.param("id"))
    except ValueError:
        return None
    if 0 <= index < len(books):
        return index
    return None


def get_book(request, respond):
    index = find_book(request)
    if index is None:
        respond.not_found()
    else:
        respond(None, books[index])


def update_book(request, is_patch, respond):
    index = find_book(request)
    if index is None:
        respond.not_found()
    elif is_patch:
        books[index].update(request.body or {})
        respond(None, books[index])
    else:
        books[index] = request.body
        respond(None, books[index])


def delete_book(request, respond):
    index = find_book(request)
    if index is None:
        respond.not_found()
    else:
        books.pop(index)
        respond()


def create_app():
    """Create the bookstore application."""
    app = ResourceApplication(Options.from_env())

    collection = app.resource("books").hook(require_token)
    collection.count(count_books).list(list_books).post(add_book)
    collection.sub("{id}").get(get_book).put(update_book).delete(delete_book)

    native(app.resource("settings"), {"theme": "dark", "currency": "EUR"})
    return app


app = create_app()
asgi_app = ASGIAdapter(app)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    for request in [
        Request(HTTPMethod.GET, "/books", query_params={"limit": "1"}),
        Request(HTTPMethod.GET, "/books/1"),
        Request(HTTPMethod.POST, "/books", body={"title": "Ubik"}),
        Request(HTTPMethod.POST, "/books", headers={"Authorization": "Bearer secret"}, body={"title": "Ubik"}),
        Request(HTTPMethod.DELETE, "/books"),
        Request(HTTPMethod.GET, "/settings/theme"),
        Request(HTTPMethod.GET, "/nowhere"),
    ]:
        response = app.execute(request)
        print(f"{request.method_name} {request.path} -> {int(response.status_code)} {response.body!r}")
