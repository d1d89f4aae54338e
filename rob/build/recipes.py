"""
Container build recipes.

Each recipe is piped to the engine's ``build -f -`` as-is.
"""

from __future__ import annotations

LOCAL_REACT_BUILD = b"""\
FROM node:18-alpine

WORKDIR /app

COPY package.json .
COPY package-lock.json .
COPY tsconfig*.json ./

RUN npm install
ADD ./src ./src
ADD ./public ./public

ENTRYPOINT ["npm", "run", "build"]
"""

REMOTE_REACT_BUILD = b"""\
FROM node:18-alpine

ARG GITHUB_URL
ARG GITHUB_DIR

ADD ${GITHUB_URL}/archive/master.tar.gz ./
RUN tar -xzf master.tar.gz -C ./ && mv ./${GITHUB_DIR}-master app

WORKDIR /app

RUN npm install

ENTRYPOINT ["npm", "run", "build"]
"""

ROOT_BUILD = b"""\
FROM golang:1.22-alpine

ARG BUILD_NAME
ARG GOARCH
ARG GOOS

WORKDIR /app

RUN mkdir out && apk add --no-cache gcc git musl-dev

COPY . .

RUN go mod download
RUN env CGO_ENABLED=0 GOOS=${GOOS} GOARCH=${GOARCH} \\
    go build -ldflags '-extldflags "-static"' -o ./out/${BUILD_NAME}

ENV BUILD_NAME=${BUILD_NAME}

ENTRYPOINT cat ./out/${BUILD_NAME}
"""

# The installer images print a single-file rob (a zipapp) on stdout.
INSTALLER_LOCAL = b"""\
FROM python:3.12-slim

WORKDIR /src

COPY pyproject.toml .
COPY rob ./rob

RUN pip install --no-cache-dir --target /out/app . && \\
    python -m zipapp /out/app -m "rob.cli:main" -p "/usr/bin/env python3" -o /out/rob

ENTRYPOINT ["cat", "/out/rob"]
"""

INSTALLER_REMOTE = b"""\
FROM python:3.12-slim

ARG SOURCE_URL

WORKDIR /src

ADD ${SOURCE_URL}/archive/master.tar.gz ./
RUN tar -xzf master.tar.gz --strip-components=1 && rm master.tar.gz

RUN pip install --no-cache-dir --target /out/app . && \\
    python -m zipapp /out/app -m "rob.cli:main" -p "/usr/bin/env python3" -o /out/rob

ENTRYPOINT ["cat", "/out/rob"]
"""
