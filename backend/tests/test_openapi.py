def test_openapi_spec_available(client):
    resp = client.get('/openapi.json')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['openapi'].startswith('3.')
    assert '/iam/auth/login' in body['paths']
    assert '/configurator/quote' in body['paths']


def test_docs_page(client):
    resp = client.get('/docs')
    assert resp.status_code == 200
    assert b'Redoc' in resp.data or b'redoc' in resp.data


def test_required_actions_documented(client):
    spec = client.get('/openapi.json').get_json()
    paths = spec['paths']
    assert paths['/catalog/brands']['get']['x-required-action'] == '/brands'
    assert paths['/catalog/brands']['post']['x-required-action'] == '/brands/new'
    assert paths['/catalog/brands/{item_id}']['put']['x-required-action'] == '/brands/{item_id}/edit'
    assert paths['/catalog/direct-sales/{item_id}']['delete']['x-required-action'] == '/direct-sales/edit/{item_id}'
    assert paths['/catalog/version-colors']['get']['x-required-action'] == '/api/version-colors'
    assert paths['/iam/permissions']['post']['x-required-action'] == '/admin/permission-settings'
    assert 'x-required-action' not in paths['/iam/auth/login']['post']
    assert 'security' not in paths['/iam/auth/login']['post']


def test_every_secured_operation_names_its_action(client):
    spec = client.get('/openapi.json').get_json()
    for path, ops in spec['paths'].items():
        if path in ('/healthz', '/iam/auth/login'):
            continue
        for method, op in ops.items():
            assert op.get('x-required-action'), f'{method.upper()} {path} missing x-required-action'
            assert op['security'] == [{'BearerAuth': []}]


def test_sort_parameter_components_and_usage(client):
    spec = client.get('/openapi.json').get_json()
    comps = spec['components']['parameters']
    path_map = {
        '/catalog/brands': 'SortBrandsParam',
        '/catalog/paint-types': 'SortPaintTypesParam',
        '/catalog/vehicles': 'SortVehiclesParam',
        '/catalog/direct-sales': 'SortDirectSalesParam',
    }
    for p, comp in path_map.items():
        assert comp in comps, f"Missing parameter component: {comp}"
        params = spec['paths'][p]['get'].get('parameters', [])
        assert any(pr.get('$ref', '').endswith(comp) for pr in params), f"{p} missing ref to {comp}"


def test_list_caching_headers_documented(client):
    spec = client.get('/openapi.json').get_json()
    for p in ['/catalog/brands', '/catalog/vehicles', '/catalog/version-optionals']:
        hdrs = spec['paths'][p]['get']['responses']['200'].get('headers', {})
        for h in ['ETag', 'Last-Modified', 'X-Last-Modified-ISO']:
            assert h in hdrs, f"{p} missing header doc {h}"


def test_spec_is_deterministic(client):
    first = client.get('/openapi.json').get_data()
    second = client.get('/openapi.json').get_data()
    assert first == second
