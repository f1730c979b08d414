from fastapi.testclient import TestClient
from app.main import app

with TestClient(app) as client:
    print('ROOT:')
    print(client.get('/').json())

    print('\nAPI:')
    print(client.get('/api').json())

    print('\nHEALTH:')
    print(client.get('/health').json())

    print('\nDB HEALTH:')
    resp = client.get('/health/db')
    print(resp.status_code)
    print(resp.json())

    print('\nACTIVE DEPARTMENTS:')
    resp = client.get('/api/departments/active')
    print(resp.status_code)
    print(resp.json())
