"""
End-to-end pipeline tests across all drivers.

Each test class defines a single app; every test runs against the direct
driver and the ASGI driver.
"""

import io

import anyio
import pytest

from resttree import HTTPMethod, HTTPError, Options, Request, ResourceApplication, Response
from tests.framework import HttpRequest, MultiDriverTestBase


class TestSingleItemResources(MultiDriverTestBase):
    """Test resources exposing get/put/delete/post."""

    def create_app(self) -> ResourceApplication:
        app = ResourceApplication()
        self.calls = []
        self.things = {"1": {"id": "1", "name": "widget"}}

        def get_thing(request, respond):
            self.calls.append(("get", request.param("id")))
            thing = self.things.get(request.param("id"))
            if thing is None:
                respond.not_found()
            else:
                respond(None, thing)

        def put_thing(request, is_patch, respond):
            self.calls.append(("put", is_patch))
            thing_id = request.param("id")
            if is_patch:
                self.things[thing_id].update(request.body)
            else:
                self.things[thing_id] = dict(request.body, id=thing_id)
            respond(None, self.things[thing_id])

        def delete_thing(request, respond):
            self.things.pop(request.param("id"), None)
            respond()

        def create_thing(request, respond):
            if not isinstance(request.body, dict) or "name" not in request.body:
                respond.status(400, "A name is required")
                return
            thing_id = str(len(self.things) + 1)
            self.things[thing_id] = dict(request.body, id=thing_id)
            respond.status(201, {"id": thing_id})

        app.resource("things").post(create_thing)
        app.resource("things/{id}").get(get_thing).put(put_thing).delete(delete_thing)
        app.resource("thing").get(lambda request, respond: respond(None, {"single": True}))
        return app

    def test_get_invokes_get_once(self, api):
        api_client, driver_name = api

        data = api_client.expect_successful_retrieval(api_client.get_resource("/thing"))
        assert data == {"single": True}

    def test_get_with_path_parameter(self, api):
        api_client, driver_name = api

        data = api_client.expect_successful_retrieval(api_client.get_resource("/things/1"))
        assert data == {"id": "1", "name": "widget"}
        assert self.calls == [("get", "1")]

    def test_head(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.head("/things/1"))
        assert response.status_code == 200
        if driver_name == "asgi":
            assert response.body is None

    def test_handler_not_found(self, api):
        api_client, driver_name = api

        api_client.expect_not_found(api_client.get_resource("/things/99"))

    def test_patch_passes_is_patch(self, api):
        api_client, driver_name = api

        data = api_client.expect_successful_retrieval(
            api_client.patch_resource("/things/1", {"colour": "red"})
        )
        assert data == {"id": "1", "name": "widget", "colour": "red"}
        assert self.calls == [("put", True)]

    def test_put_passes_is_not_patch(self, api):
        api_client, driver_name = api

        data = api_client.expect_successful_retrieval(
            api_client.update_resource("/things/1", {"name": "gadget"})
        )
        assert data == {"id": "1", "name": "gadget"}
        assert self.calls == [("put", False)]

    def test_delete(self, api):
        api_client, driver_name = api

        api_client.expect_no_content(api_client.delete_resource("/things/1"))
        assert self.things == {}

    def test_post_created(self, api):
        api_client, driver_name = api

        response = api_client.create_resource("/things", {"name": "gizmo"})
        assert response.status_code == 201
        assert response.get_json_body() == {"id": "2"}

    def test_post_bad_request(self, api):
        api_client, driver_name = api

        response = api_client.create_resource("/things", {"colour": "blue"})
        assert response.status_code == 400
        assert response.get_text_body() == "A name is required"

    def test_missing_capability_invokes_nothing(self, api):
        api_client, driver_name = api

        api_client.expect_method_not_allowed(api_client.delete_resource("/thing"))
        api_client.expect_method_not_allowed(api_client.create_resource("/things/1", {"name": "x"}))
        api_client.expect_method_not_allowed(api_client.get_resource("/things"))
        assert self.calls == []

    def test_unknown_path(self, api):
        api_client, driver_name = api

        api_client.expect_not_found(api_client.get_resource("/nowhere"))
        api_client.expect_not_found(api_client.get_resource("/things/1/parts"))

    def test_options_without_capability(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.options("/things/1"))
        assert response.is_client_error()
        api_client.expect_method_not_allowed(response)
        assert self.calls == []

    def test_extension_method_is_not_allowed(self, api):
        api_client, driver_name = api

        api_client.expect_method_not_allowed(
            api_client.execute(HttpRequest(method="TRACE", path="/things/1"))
        )
        api_client.expect_not_found(
            api_client.execute(HttpRequest(method="PROPFIND", path="/nowhere"))
        )
        assert self.calls == []


class TestListing(MultiDriverTestBase):
    """Test paginated listing through count and list."""

    def create_app(self) -> ResourceApplication:
        app = ResourceApplication()
        self.items = [f"item-{i}" for i in range(25)]
        self.list_calls = []

        def count(request, callback):
            callback(None, len(self.items))

        def list_items(request, skip, limit, callback):
            self.list_calls.append((skip, limit))
            callback(None, self.items[skip:skip + limit])

        app.resource("items").count(count).list(list_items)
        return app

    def test_defaults(self, api):
        api_client, driver_name = api

        data = api_client.expect_listing(api_client.list_resources("/items"))
        assert data["_count"] == 25
        assert data["_items"] == self.items[:10]
        assert self.list_calls == [(0, 10)]

    def test_skip_and_limit(self, api):
        api_client, driver_name = api

        data = api_client.expect_listing(api_client.list_resources("/items", skip="20", limit="10"))
        assert data["_items"] == self.items[20:]
        assert self.list_calls == [(20, 10)]

    def test_non_numeric_values_fall_back(self, api):
        api_client, driver_name = api

        api_client.expect_listing(api_client.list_resources("/items", skip="lots", limit="many"))
        assert self.list_calls == [(0, 10)]


class TestFailingListing(MultiDriverTestBase):
    """Test that a failing count short-circuits the listing."""

    def create_app(self) -> ResourceApplication:
        app = ResourceApplication()
        self.list_calls = []

        def count(request, callback):
            callback(HTTPError(503, "Index rebuilding"))

        def list_items(request, skip, limit, callback):
            self.list_calls.append((skip, limit))
            callback(None, [])

        app.resource("items").count(count).list(list_items)
        return app

    def test_count_failure(self, api):
        api_client, driver_name = api

        response = api_client.list_resources("/items")
        assert response.status_code == 503
        assert response.get_text_body() == "Index rebuilding"
        assert self.list_calls == []


class TestHooks(MultiDriverTestBase):
    """Test pre-dispatch hooks through the pipeline."""

    def create_app(self) -> ResourceApplication:
        app = ResourceApplication()
        self.trace = []

        @app.hook
        def log_request(request, proceed):
            self.trace.append("app")
            proceed()

        def require_token(request, proceed):
            self.trace.append("auth")
            if request.get_header("authorization") != "Bearer valid":
                proceed.unauthorized()
            elif request.method != HTTPMethod.GET:
                proceed.forbidden()
            else:
                proceed()

        def get_secret(request, respond):
            self.trace.append("get")
            respond(None, {"secret": 42})

        app.resource("secret").hook(require_token).get(get_secret).delete(get_secret)
        app.resource("public").get(lambda request, respond: respond(None, "open"))
        return app

    def test_hooks_then_dispatch(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.get("/secret").with_auth("valid"))
        assert api_client.expect_successful_retrieval(response) == {"secret": 42}
        assert self.trace == ["app", "auth", "get"]

    def test_unauthorized(self, api):
        api_client, driver_name = api

        api_client.expect_unauthorized(api_client.get_resource("/secret"))
        assert self.trace == ["app", "auth"]

    def test_forbidden_never_dispatches(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.delete("/secret").with_auth("valid"))
        api_client.expect_forbidden(response)
        assert response.get_text_body() == "Forbidden"
        assert "get" not in self.trace

    def test_hooks_of_other_resources_do_not_run(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/public")
        assert response.status_code == 200
        assert response.get_text_body() == "open"
        assert self.trace == ["app"]

    def test_not_found_runs_no_hooks(self, api):
        api_client, driver_name = api

        api_client.expect_not_found(api_client.get_resource("/missing"))
        assert self.trace == []


class TestFailingResolver(MultiDriverTestBase):
    """Test that a resolver raising during matching answers 500."""

    def create_app(self) -> ResourceApplication:
        app = ResourceApplication()
        self.trace = []

        @app.hook
        def record(request, proceed):
            self.trace.append("hook")
            proceed()

        def resolve(params):
            raise RuntimeError("db down")

        app.resource("things/{id}").resolver(resolve)
        app.resource("health").get(lambda request, respond: respond(None, "ok"))
        return app

    def test_resolver_error_is_500(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/things/1")
        assert response.is_server_error()
        assert response.status_code == 500
        assert response.get_text_body() == "db down"
        assert self.trace == []

    def test_other_resources_still_served(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/health")
        assert response.is_successful()
        assert response.get_text_body() == "ok"


class TestResponseBodies(MultiDriverTestBase):
    """Test the body rules of the response writer end to end."""

    def create_app(self) -> ResourceApplication:
        app = ResourceApplication()
        self.report = None

        app.resource("number").get(lambda request, respond: respond(None, 404))
        app.resource("nothing").get(lambda request, respond: respond(None, None, "text/html"))
        app.resource("html").get(lambda request, respond: respond(None, "<b>hi</b>", "text/html"))
        app.resource("stream").get(
            lambda request, respond: respond(None, io.BytesIO(b"streamed bytes"))
        )

        def boom(request, respond):
            raise RuntimeError("handler crashed")

        app.resource("boom").get(boom)
        return app

    def test_number_is_body_not_status(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/number")
        assert response.status_code == 200
        assert response.get_text_body() == "404"

    def test_empty_body_ignores_mime(self, api):
        api_client, driver_name = api

        api_client.expect_no_content(api_client.get_resource("/nothing"))

    def test_mime_is_applied(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/html")
        assert response.status_code == 200
        assert response.get_header("content-type") == "text/html"
        assert response.get_text_body() == "<b>hi</b>"

    def test_stream_body(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/stream")
        assert response.status_code == 200
        assert response.body == b"streamed bytes"

    def test_exception_becomes_500(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/boom")
        assert response.status_code == 500
        assert response.get_text_body() == "handler crashed"


class TestDirectExecution:
    """Test pipeline behavior only observable without a transport."""

    def test_path_params_overwrite_request_params(self):
        app = ResourceApplication()
        app.resource("users/{id}").get(lambda request, respond: respond(None, request.param("id")))

        request = Request(HTTPMethod.GET, "/users/7", params={"id": "query"})
        response = app.execute(request)
        assert response.body == "7"
        assert request.params == {"id": "7"}

    def test_param_lookup_order(self):
        request = Request(
            HTTPMethod.POST,
            "/x",
            query_params={"a": "query", "b": "query", "c": "query"},
            params={"a": "path"},
            body={"a": "body", "b": "body"},
        )
        assert request.param("a") == "path"
        assert request.param("b") == "body"
        assert request.param("c") == "query"
        assert request.param("d", "default") == "default"

    def test_method_is_normalized(self):
        assert Request("patch", "/x").method == HTTPMethod.PATCH
        assert Request(HTTPMethod.GET, "/x").method_name == "GET"

    def test_extension_method_is_kept_as_name(self):
        request = Request("propfind", "/x")
        assert request.method == "PROPFIND"
        assert request.method_name == "PROPFIND"
        with pytest.raises(ValueError):
            Request("  ", "/x")

    def test_resolver_error_is_500(self, caplog):
        app = ResourceApplication()

        def resolve(params):
            raise RuntimeError("db down")

        app.resource("things/{id}").resolver(resolve)
        with caplog.at_level("ERROR", logger="resttree.responder"):
            response = app.execute(Request(HTTPMethod.GET, "/things/1"))
        assert response.status_code == 500
        assert response.body == "db down"
        assert "GET /things/1 failed with 500" in caplog.text

    def test_headers_are_case_insensitive(self):
        request = Request(HTTPMethod.GET, "/x", headers={"Content-Type": "application/json"})
        assert request.get_content_type() == "application/json"
        assert request.get_header("CONTENT-TYPE") == "application/json"

    def test_error_stack_option(self):
        app = ResourceApplication(Options(error_stack=True))

        def broken(request, respond):
            raise KeyError("missing")

        app.resource("broken").get(broken)
        response = app.execute(Request(HTTPMethod.GET, "/broken"))
        assert response.status_code == 500
        assert "Traceback" in response.body
        assert "KeyError" in response.body

    def test_remove_resource(self):
        app = ResourceApplication()
        app.resource("temp").get(lambda request, respond: respond(None, "here"))
        assert app.execute(Request(HTTPMethod.GET, "/temp")).status_code == 200

        assert app.remove("temp")
        assert app.execute(Request(HTTPMethod.GET, "/temp")).status_code == 404

    def test_file_response(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("some notes")

        app = ResourceApplication()
        app.resource("notes").get(lambda request, respond: respond.file(None, path))
        response = app.execute(Request(HTTPMethod.GET, "/notes"))
        assert response.status_code == 200
        assert response.is_file
        assert response.body.read_text() == "some notes"

    def test_late_response_from_background_task(self):
        app = ResourceApplication()
        response = Response()
        tasks = {}

        def get_slowly(request, respond):
            async def later():
                await anyio.sleep(0.01)
                respond(None, {"late": True})
            tasks["group"].start_soon(later)

        app.resource("slow").get(get_slowly)

        async def main():
            async with anyio.create_task_group() as group:
                tasks["group"] = group
                await app.handle(Request(HTTPMethod.GET, "/slow"), response)

        anyio.run(main)
        assert response.body == {"late": True}

    def test_timeout_answers_503(self):
        app = ResourceApplication(Options(request_timeout=0.05))
        app.resource("never").get(lambda request, respond: None)

        response = app.execute(Request(HTTPMethod.GET, "/never"))
        assert response.status_code == 503
        assert response.body == "Request timed out"

    def test_timeout_not_triggered_for_fast_requests(self):
        app = ResourceApplication(Options(request_timeout=5))
        app.resource("fast").get(lambda request, respond: respond(None, "quick"))

        response = app.execute(Request(HTTPMethod.GET, "/fast"))
        assert response.status_code == 200
        assert response.body == "quick"
